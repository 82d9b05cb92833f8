import pytest

import numpy as np
from statsmodels.genmod.families import family as sm_family
from statsmodels.genmod.families import links as sm_links

from glmpath import (glmnet,
                     GLMNet,
                     GaussNet,
                     LogNet,
                     FishNet,
                     GLMFamilySpec,
                     GLMNetControl,
                     FastNetControl)

rng = np.random.default_rng(0)

n, p = 80, 5
X = rng.standard_normal((n, p))
eta = 0.5 * X[:,0]
y_gauss = eta + rng.standard_normal(n)
y_binom = rng.binomial(1, 1 / (1 + np.exp(-eta)))
y_pois = rng.poisson(np.exp(eta))


@pytest.mark.parametrize('family, y, klass', [('gaussian', y_gauss, GaussNet),
                                              ('binomial', y_binom, LogNet),
                                              ('Poisson', y_pois, FishNet),
                                              (sm_family.Poisson(), y_pois, GLMNet),
                                              (sm_family.Poisson(link=sm_links.Sqrt()), y_pois, GLMNet),
                                              (GLMFamilySpec(base=sm_family.Gamma(link=sm_links.Log())), np.exp(eta), GLMNet)])
def test_dispatch(family, y, klass):
    fit = glmnet(X, y, family=family, nlambda=10)
    assert type(fit) is klass
    assert fit.coefs_.shape[1] == p


def test_unknown_family():
    with pytest.raises(ValueError):
        glmnet(X, y_gauss, family='cox')


def test_params_passed():
    weights = rng.uniform(1, 2, size=n)
    fit = glmnet(X, y_pois, family='poisson', sample_weight=weights,
                 alpha=0.5, lambda_values=[0.1, 0.01])
    assert fit.alpha == 0.5
    assert np.allclose(fit.lambda_values_, [0.1, 0.01])
    assert np.allclose(fit.normed_sample_weight_, weights / weights.sum())


@pytest.mark.parametrize('control', [GLMNetControl(epsnr=1e-10, mxitnr=50),
                                     {'epsnr': 1e-10, 'mxitnr': 50}])
def test_path_control(control):
    """
    a path control given to a closed-form path keeps its values
    """
    fit = glmnet(X, y_pois, family='poisson', nlambda=10, control=control)
    assert type(fit) is FishNet
    assert isinstance(fit.control, FastNetControl)
    assert fit.control.epsnr == 1e-10
    assert fit.control.mxitnr == 50
    assert fit.control.exmx == FastNetControl().exmx
