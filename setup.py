import os

# BEFORE importing distutils, remove MANIFEST. distutils doesn't properly
# update it when the contents of directories change.
if os.path.exists('MANIFEST'): os.remove('MANIFEST')
import setuptools

from setuptools import setup

# get version and long_description

dirname = os.path.abspath(os.path.dirname(__file__))

version = {}
with open(os.path.join(dirname, 'glmpath', '_version.py'), 'rt', encoding='utf-8') as f:
    exec(f.read(), version)

long_description = open(os.path.join(dirname, 'README.md'), 'rt', encoding='utf-8').read()
long_description_content_type = 'text/markdown'

install_requires = ['numpy',
                    'scipy',
                    'pandas',
                    'scikit-learn',
                    'statsmodels',
                    'tqdm']

def main(**extra_args):
    setup(name='glmpath',
          version=version['__version__'],
          packages = ['glmpath',
                      'glmpath.paths'],
          python_requires='>=3.9',
          install_requires=install_requires,
          extras_require={'test':['pytest']},
          data_files=[],
          scripts=[],
          long_description=long_description,
          long_description_content_type=long_description_content_type,
          **extra_args
         )

#simple way to test what setup will do
#python setup.py install --prefix=/tmp
if __name__ == "__main__":
    main()
