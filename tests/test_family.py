import pytest
import numpy as np
import statsmodels.api as sm
from statsmodels.genmod.families import family as sm_family
from statsmodels.genmod.families import links as sm_links

from glmpath.base import Design
from glmpath.family import (GLMFamilySpec,
                            BinomFamilySpec,
                            GLMState)

rng = np.random.default_rng(0)

n = 50


@pytest.mark.parametrize('family, base', [('gaussian', sm_family.Gaussian),
                                          ('Binomial', sm_family.Binomial),
                                          ('poisson', sm_family.Poisson),
                                          ('gamma', sm_family.Gamma),
                                          (sm_family.Poisson(link=sm_links.Sqrt()), sm_family.Poisson),
                                          (sm_family.Binomial(link=sm_links.Probit()), sm_family.Binomial)])
def test_from_family(family, base):
    spec = GLMFamilySpec.from_family(family)
    assert isinstance(spec.base, base)
    assert isinstance(spec, BinomFamilySpec) == (base is sm_family.Binomial)
    assert GLMFamilySpec.from_family(spec) is spec


@pytest.mark.parametrize('family', ['cox', 3, None])
def test_bad_family(family):
    with pytest.raises(ValueError):
        GLMFamilySpec.from_family(family)


def test_is_gaussian():
    assert GLMFamilySpec().is_gaussian
    assert not GLMFamilySpec(base=sm_family.Gaussian(link=sm_links.Log())).is_gaussian
    assert not GLMFamilySpec(base=sm_family.Poisson()).is_gaussian


def test_valid_mean():
    binom = BinomFamilySpec()
    assert binom.valid_mean(np.array([0.1, 0.9]))
    assert not binom.valid_mean(np.array([0, 0.5]))
    assert not binom.valid_mean(np.array([0.5, np.nan]))

    poisson = GLMFamilySpec(base=sm_family.Poisson())
    assert poisson.valid_mean(np.array([0.1, 10]))
    assert not poisson.valid_mean(np.array([0, 1]))
    assert not poisson.valid_mean(np.array([np.inf, 1]))

    gaussian = GLMFamilySpec()
    assert gaussian.valid_mean(np.array([-3, 4.]))


def test_valid_link():
    gamma = GLMFamilySpec(base=sm_family.Gamma())
    assert gamma.valid_link(np.array([0.5, 2]))
    assert not gamma.valid_link(np.array([0., 2]))

    inv_gauss = GLMFamilySpec(base=sm_family.InverseGaussian())
    assert inv_gauss.valid_link(np.array([0.5, 2]))
    assert not inv_gauss.valid_link(np.array([-0.5, 2]))

    poisson = GLMFamilySpec(base=sm_family.Poisson())
    assert poisson.valid_link(np.array([-30, 30.]))
    assert not poisson.valid_link(np.array([np.nan, 1]))

    # mu = eta**2 would still be positive
    sqrt = GLMFamilySpec.from_family(sm_family.Poisson(link=sm_links.Sqrt()))
    assert sqrt.valid_link(np.array([0.5, 2]))
    assert not sqrt.valid_link(np.array([-1., 2.]))
    assert not sqrt.valid_link(np.array([0., 2.]))


@pytest.mark.parametrize('family, response', [(sm_family.Gaussian(), rng.standard_normal(n)),
                                              (sm_family.Poisson(), rng.poisson(3, size=n)),
                                              (sm_family.Binomial(), rng.binomial(1, 0.3, size=n)),
                                              (sm_family.Gamma(link=sm_links.Log()), rng.exponential(2, size=n))])
@pytest.mark.parametrize('offset', [None, rng.uniform(0, 0.5, size=n)])
def test_null_fit(family, response, offset):

    weights = rng.uniform(1, 2, size=n)
    spec = GLMFamilySpec.from_family(family)
    state, dev = spec.get_null_deviance(response,
                                        sample_weight=weights,
                                        offset=offset)

    sm_fit = sm.GLM(response,
                    np.ones((n, 1)),
                    family=family,
                    offset=offset,
                    freq_weights=weights).fit()

    assert np.allclose(state.coef[0], sm_fit.params[0], rtol=1e-5, atol=1e-6)
    assert np.allclose(dev, sm_fit.deviance, rtol=1e-5)


def test_null_fit_no_intercept():
    spec = GLMFamilySpec(base=sm_family.Poisson())
    response = rng.poisson(2, size=n)
    state = spec.null_fit(response, fit_intercept=False)
    assert np.allclose(state.mu, 1)


@pytest.mark.parametrize('family', [sm_family.Poisson(),
                                    sm_family.Poisson(link=sm_links.Sqrt()),
                                    sm_family.Binomial(link=sm_links.Probit()),
                                    sm_family.Gamma(link=sm_links.Log())])
def test_response_and_weights(family):
    """
    one working response / weights step matches a weighted least squares
    step computed by hand
    """
    spec = GLMFamilySpec.from_family(family)
    X1 = np.ones((n, 1))
    D = Design(X1, np.ones(n), intercept=False)

    state = GLMState(np.array([0.3]), 0)
    state.update(D, spec, None)

    y = spec.base.link.inverse(0.3 + 0.1 * rng.standard_normal(n))
    w = rng.uniform(1, 2, size=n)

    z, nw = spec.get_response_and_weights(state, y, None, w)

    dmu = family.link.inverse_deriv(state.eta)
    assert np.allclose(nw, w * dmu**2 / family.variance(state.mu))
    assert np.allclose(z, state.eta + (y - state.mu) / dmu)


def test_zero_variance():
    # Binomial variance is clipped away from 0, Poisson's is not
    spec = GLMFamilySpec(base=sm_family.Poisson())
    assert spec.base.variance(np.zeros(1))[0] == 0
    state = GLMState(np.zeros(1), 0)
    state.mu = np.zeros(n)
    state.link_parameter = state.eta = np.zeros(n)
    with pytest.raises(ValueError):
        spec.get_response_and_weights(state, np.zeros(n), None, np.ones(n))


def test_class_prediction():
    spec = BinomFamilySpec()
    eta = np.array([-2, -0.1, 0.1, 3])
    assert np.all(spec.predict(eta, prediction_type='class') == [0, 0, 1, 1])
    assert np.allclose(spec.predict(eta, prediction_type='link'), eta)
    with pytest.raises(ValueError):
        spec.predict(eta, prediction_type='probability')
