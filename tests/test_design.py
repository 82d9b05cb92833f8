import pytest
import numpy as np
import scipy.sparse

from glmpath.base import Design
from glmpath.family import GLMState

rng = np.random.default_rng(0)

n, p = 100, 5

@pytest.mark.parametrize('X', [rng.standard_normal((n, p)),
                               scipy.sparse.csc_array(rng.standard_normal((n, p)) * (rng.uniform(size=(n, p)) < 0.3))])
@pytest.mark.parametrize('weights', [np.ones(n), rng.uniform(1, 2, size=(n,))])
@pytest.mark.parametrize('standardize', [True, False])
@pytest.mark.parametrize('intercept', [True, False])
def test_design(X, weights, standardize, intercept):
    """
    test the linear / adjoint maps of Design from an np.ndarray and a scipy.sparse.csc_array
    """

    if scipy.sparse.issparse(X):
        X_np = X.toarray()
    else:
        X_np = X.copy()

    W = weights / weights.sum()
    xm = X_np.T @ W
    if standardize:
        xs = np.sqrt((X_np**2).T @ W - xm**2)
    else:
        xs = np.ones(p)
    if not intercept:
        xm = np.zeros(p)

    X_eff = (X_np - xm[None,:]) / xs[None,:]
    X1 = np.concatenate([np.ones((n, 1)), X_eff], axis=1)

    design = Design(X,
                    weights,
                    standardize=standardize,
                    intercept=intercept)
    design_s = Design(scipy.sparse.csc_array(X_np),
                      weights,
                      standardize=standardize,
                      intercept=intercept)

    assert np.allclose(design.centers_, xm)
    assert np.allclose(design.scaling_, xs)

    b = rng.standard_normal(p + 1)
    r = rng.standard_normal(n)

    for D in [design, design_s]:
        assert np.allclose(D @ b, X1 @ b)
        assert np.allclose(D.T @ r, X1.T @ r)
        assert np.allclose(D.dense(), X_eff)
        for j in range(p):
            assert np.allclose(D.column(j), X_eff[:,j])

    if intercept:
        assert np.allclose(X_eff.T @ W, 0)


@pytest.mark.parametrize('standardize', [True, False])
@pytest.mark.parametrize('intercept', [True, False])
def test_scaled_raw(standardize, intercept):
    """
    scaled_to_raw and raw_to_scaled give the same linear predictor
    """
    X = rng.standard_normal((n, p)) * rng.uniform(1, 3, size=p) + 2
    design = Design(X,
                    np.ones(n),
                    standardize=standardize,
                    intercept=intercept)

    coef = rng.standard_normal(p)
    intercept_ = rng.standard_normal()

    raw_intercept, raw_coef = design.scaled_to_raw(coef=coef,
                                                   intercept=intercept_)
    assert np.allclose(X @ raw_coef + raw_intercept,
                       design @ np.hstack([intercept_, coef]))

    back_intercept, back_coef = design.raw_to_scaled(coef=raw_coef,
                                                     intercept=raw_intercept)
    assert np.allclose(back_coef, coef)
    assert np.allclose(back_intercept, intercept_)

    state = design.scaled_to_raw(GLMState(coef, intercept_))
    assert isinstance(state, GLMState)
    assert np.allclose(state.coef, raw_coef)
    assert np.allclose(state.intercept, raw_intercept)


def test_constant_column():
    X = rng.standard_normal((n, p))
    X[:,2] = 3
    design = Design(X, np.ones(n), standardize=True)
    assert design.scaling_[2] == 1
    assert np.allclose(design.column(2), 0)


def test_scaling_without_intercept():
    """
    without an intercept columns keep their mean but are scaled
    by the centered standard deviation
    """
    X = rng.standard_normal((n, p)) + 4
    weights = rng.uniform(1, 2, size=n)
    with_int = Design(X, weights, standardize=True, intercept=True)
    no_int = Design(X, weights, standardize=True, intercept=False)

    assert np.allclose(no_int.centers_, 0)
    assert np.allclose(no_int.scaling_, with_int.scaling_)
    assert np.allclose(no_int.dense(), X / with_int.scaling_[None,:])
