import pytest
import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.genmod.families import family as sm_family
from statsmodels.genmod.families import links as sm_links

from glmpath import (GLM,
                     BinomialGLM,
                     GLMControl)

rng = np.random.default_rng(0)

n, p = 200, 4
X = rng.standard_normal((n, p))
eta = X[:,:2] @ np.array([0.3, -0.2]) + 0.5

responses = {'gaussian': eta + rng.standard_normal(n),
             'poisson': rng.poisson(np.exp(eta)),
             'binomial': rng.binomial(1, 1 / (1 + np.exp(-eta))),
             'gamma': rng.gamma(2, np.exp(eta) / 2),
             'poisson_sqrt': rng.poisson((2 + eta)**2)}

families = [('gaussian', sm_family.Gaussian()),
            ('poisson', sm_family.Poisson()),
            ('poisson_sqrt', sm_family.Poisson(link=sm_links.Sqrt())),
            ('binomial', sm_family.Binomial()),
            ('binomial', sm_family.Binomial(link=sm_links.Probit())),
            ('gamma', sm_family.Gamma(link=sm_links.Log()))]

tight = dict(mxitnr=100, epsnr=1e-12)


@pytest.mark.parametrize('name, family', families)
@pytest.mark.parametrize('weighted', [False, True])
@pytest.mark.parametrize('fit_intercept', [True, False])
@pytest.mark.parametrize('standardize', [False, True])
def test_statsmodels(name, family, weighted, fit_intercept, standardize):

    if not fit_intercept and isinstance(family.link, sm_links.Sqrt):
        pytest.skip('sqrt link needs eta > 0, not attainable through the origin with centered X')

    y = responses[name]
    weights = rng.uniform(1, 2, size=n) if weighted else None

    glm = GLM(family=family,
              fit_intercept=fit_intercept,
              standardize=standardize,
              control=GLMControl(**tight))
    glm.fit(X, y, sample_weight=weights)

    X1 = sm.add_constant(X) if fit_intercept else X
    sm_fit = sm.GLM(y, X1, family=family, freq_weights=weights).fit()

    params = np.hstack([glm.intercept_, glm.coef_]) if fit_intercept else glm.coef_
    assert glm.converged_
    assert np.allclose(params, sm_fit.params, rtol=1e-4, atol=1e-6)
    assert np.allclose(glm.deviance_, sm_fit.deviance, rtol=1e-6)
    assert np.allclose(glm.predict(X), sm_fit.predict(X1), rtol=1e-4, atol=1e-6)


@pytest.mark.parametrize('name, family', families[1:4])
def test_offset(name, family):
    """
    offset and weights given as columns of a DataFrame
    """
    y = responses[name]
    offset = rng.uniform(0, 0.3, size=n)
    weights = rng.uniform(1, 2, size=n)

    Y = pd.DataFrame({'response': y,
                      'offset': offset,
                      'weight': weights})
    glm = GLM(family=family,
              offset_id='offset',
              weight_id='weight',
              response_id='response',
              control=GLMControl(**tight)).fit(X, Y)

    sm_fit = sm.GLM(y,
                    sm.add_constant(X),
                    family=family,
                    offset=offset,
                    freq_weights=weights).fit()

    assert np.allclose(np.hstack([glm.intercept_, glm.coef_]), sm_fit.params, rtol=1e-4, atol=1e-6)
    assert np.allclose(glm.null_deviance_, sm_fit.null_deviance, rtol=1e-5)


def test_gaussian_dispersion():

    y = responses['gaussian']
    glm = GLM().fit(X, y)
    sm_fit = sm.GLM(y, sm.add_constant(X)).fit()
    assert glm.df_resid_ == n - p - 1
    assert np.allclose(glm.dispersion_, sm_fit.scale)


def test_ridge():
    """
    ridge coefficient adds `ridge_coef * |b|^2 / 2` to deviance / (2 sum(w))
    """
    y = responses['gaussian']
    ridge = 0.3
    glm = GLM(ridge_coef=ridge).fit(X, y)

    Xc = X - X.mean(0)
    yc = y - y.mean()
    coef = np.linalg.solve(Xc.T @ Xc / n + ridge * np.identity(p), Xc.T @ yc / n)
    assert np.allclose(glm.coef_, coef)


def test_exclude():
    y = responses['poisson']
    glm = GLM(family=sm_family.Poisson(),
              exclude=[1, 3],
              control=GLMControl(**tight)).fit(X, y)
    sm_fit = sm.GLM(y, sm.add_constant(X[:,[0, 2]]), family=sm_family.Poisson()).fit()
    assert np.all(glm.coef_[[1, 3]] == 0)
    assert np.allclose(glm.coef_[[0, 2]], sm_fit.params[1:], rtol=1e-4)


def test_binomial_labels():

    y01 = responses['binomial']
    labels = np.where(y01, 'yes', 'no')

    glm = BinomialGLM(control=GLMControl(**tight)).fit(X, labels)
    sm_fit = sm.GLM(y01, sm.add_constant(X), family=sm_family.Binomial()).fit()

    assert list(glm.classes_) == ['no', 'yes']
    assert np.allclose(glm.coef_, sm_fit.params[1:], rtol=1e-4)

    prob = glm.predict_proba(X)
    assert np.allclose(prob.sum(1), 1)
    assert np.allclose(prob[:,1], sm_fit.predict(sm.add_constant(X)), rtol=1e-4)

    pred = glm.predict(X)
    assert set(pred) <= {'no', 'yes'}
    assert np.all((pred == 'yes') == (prob[:,1] > 0.5))

    assert np.allclose(glm.score(X, labels), -sm_fit.deviance / 2, rtol=1e-5)

    # log-likelihood, not accuracy
    glm01 = BinomialGLM(control=GLMControl(**tight)).fit(X, y01)
    assert np.allclose(glm01.score(X, y01), -sm_fit.deviance / 2, rtol=1e-5)

    with pytest.raises(ValueError):
        BinomialGLM().fit(X, rng.choice(['a', 'b', 'c'], size=n))


def test_score():
    y = responses['poisson']
    glm = GLM(family=sm_family.Poisson()).fit(X, y)
    assert np.allclose(glm.score(X, y), -glm.deviance_ / 2)


def test_control_dict():
    """
    a dict of controls is converted, unknown keys dropped
    """
    y = responses['poisson']
    glm = GLM(family=sm_family.Poisson(),
              control={'epsnr': 1e-10, 'mxitnr': 50, 'fdev': 0}).fit(X, y)
    assert isinstance(glm.control, GLMControl)
    assert glm.control.mxitnr == 50
    assert glm.control.epsnr == 1e-10
