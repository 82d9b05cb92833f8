from typing import Union, Optional
from dataclasses import dataclass, InitVar

import numpy as np
import scipy.sparse
from scipy.sparse.linalg import LinearOperator


@dataclass
class Design(LinearOperator):
    """
    Linear map representing multiply with [1,X] and its transpose, where
    the columns of X may be centered and scaled.

    Parameters
    ----------
    X: Union[np.ndarray, scipy.sparse.csc_array]
        Input matrix, of shape `(nobs, nvars)`; each row is an observation
        vector. If it is a sparse matrix, centering and scaling are applied
        implicitly. If it is not a sparse matrix, a centered and scaled
        copy is stored.
    weights: Optional[np.ndarray]
        Observation weights used to compute centers and scales.
    dtype: np.dtype
        The dtype for Design as a LinearOperator.
    standardize: bool
        Standardize columns of X according to weights? Default is False.
    intercept: bool
        For a Design, is there an intercept? Without one, columns
        are not centered, but `scaling_` is still the weighted
        standard deviation about the weighted column mean, so the
        scale of a column does not depend on `intercept`.
    """
    X: Union[np.ndarray, scipy.sparse.csc_array]
    weights: Optional[np.ndarray] = None
    dtype: np.dtype = float
    standardize: InitVar[bool] = False
    intercept: InitVar[bool] = True

    def __post_init__(self, standardize, intercept):

        nobs, nvars = self.X.shape
        self.shape = (nobs, nvars + 1)

        if self.weights is None:
            self.weights = np.ones(nobs)
        w = np.asarray(self.weights, float)
        w = w / w.sum()

        # effective matrix is (X - 1 xm') diag(1/xs)

        xm = np.asarray(self.X.T @ w).reshape(-1)
        if standardize:
            if scipy.sparse.issparse(self.X):
                x2 = np.asarray(self.X.multiply(self.X).T @ w).reshape(-1)
            else:
                x2 = (self.X**2).T @ w
            xs = np.sqrt(np.maximum(x2 - xm**2, 0))
            # constant columns are left alone
            xs[xs == 0] = 1
        else:
            xs = np.ones(nvars)

        if not intercept:
            xm = np.zeros(nvars)

        self.centers_, self.scaling_ = xm, xs

        if scipy.sparse.issparse(self.X):
            self.X = scipy.sparse.csc_array(self.X)
        else:
            X = (np.asarray(self.X, float) - xm[None,:]) / xs[None,:]
            self.X = np.asfortranarray(X)

        self.unscaler_ = UnscaleOperator(centers=xm,
                                         scaling=xs)
        self.scaler_ = ScaleOperator(centers=xm,
                                     scaling=xs)

    # LinearOperator API

    def _matvec(self, x):
        x = np.asarray(x).reshape(-1)
        intercept, coef = x[0], x[1:]
        if scipy.sparse.issparse(self.X):
            coef = coef / self.scaling_
            return self.X @ coef - (coef * self.centers_).sum() + intercept
        return self.X @ coef + intercept

    def _rmatvec(self, r):
        r = np.asarray(r).reshape(-1)
        if scipy.sparse.issparse(self.X):
            Xr = (self.X.T @ r - r.sum() * self.centers_) / self.scaling_
        else:
            Xr = self.X.T @ r
        return np.hstack([r.sum(), Xr])

    def column(self, j):
        """
        Column `j` of the effective (centered and scaled) matrix as a dense vector.
        """
        if scipy.sparse.issparse(self.X):
            col = self.X[:,[j]].toarray().reshape(-1)
            return (col - self.centers_[j]) / self.scaling_[j]
        return self.X[:,j]

    def dense(self):
        """
        The effective matrix without the column of 1s.
        """
        if scipy.sparse.issparse(self.X):
            X = self.X.toarray()
            return (X - self.centers_[None,:]) / self.scaling_[None,:]
        return self.X

    def scaled_to_raw(self,
                      state=None,
                      coef=None,
                      intercept=None):
        """
        Take a "scaled" `(intercept, coef)` (the parameters used in the
        objective) and return them on the "raw" scale of the data.

        Parameters
        ----------
        state: GLMState, optional
            State object containing coefficients and intercept.
        coef: np.ndarray, optional
            Coefficient vector.
        intercept: float, optional
            Intercept value.

        Returns
        -------
        tuple or GLMState
            A new state of the same class if `state` was given, else
            `(intercept, coef)`.
        """
        return self._transform(self.unscaler_, state, coef, intercept)

    def raw_to_scaled(self,
                      state=None,
                      coef=None,
                      intercept=None):
        """
        Inverse of `scaled_to_raw`.
        """
        return self._transform(self.scaler_, state, coef, intercept)

    def _transform(self, operator, state, coef, intercept):
        if coef is not None or intercept is not None:
            if coef is None:
                coef = np.zeros(self.shape[1] - 1)
            if intercept is None:
                intercept = 0
            stack = np.hstack([intercept, coef])
        elif state is not None:
            stack = state._stack
        else:
            raise ValueError("must specify (coef, intercept) or a state")

        value = operator @ stack
        if state is not None:
            return state.__class__(coef=value[1:],
                                   intercept=value[0])
        return value[0], value[1:]


@dataclass
class UnscaleOperator(LinearOperator):
    """
    Maps `[intercept, coef]` on the scale of the effective matrix to
    the raw scale.

    Parameters
    ----------
    scaling: np.ndarray
        Scaling factors.
    centers: np.ndarray
        Centering factors.
    """
    scaling : np.ndarray
    centers: np.ndarray

    def __post_init__(self):
        self.shape = (self.scaling.shape[0] + 1,)*2
        self.dtype = float

    def _matvec(self, stacked):
        stacked = np.asarray(stacked).reshape(-1)
        result = np.zeros_like(stacked, dtype=float)
        result[1:] = stacked[1:] / self.scaling
        result[0] = stacked[0] - (result[1:] * self.centers).sum()
        return result

    def _rmatvec(self, stacked):
        stacked = np.asarray(stacked).reshape(-1)
        result = np.zeros_like(stacked, dtype=float)
        result[0] = stacked[0]
        result[1:] = (stacked[1:] - stacked[0] * self.centers) / self.scaling
        return result


@dataclass
class ScaleOperator(LinearOperator):
    """
    Maps raw `[intercept, coef]` to the scale of the effective matrix.

    Parameters
    ----------
    scaling: np.ndarray
        Scaling factors.
    centers: np.ndarray
        Centering factors.
    """
    scaling : np.ndarray
    centers: np.ndarray

    def __post_init__(self):
        self.shape = (self.scaling.shape[0] + 1,)*2
        self.dtype = float

    def _matvec(self, stacked):
        stacked = np.asarray(stacked).reshape(-1)
        result = np.zeros_like(stacked, dtype=float)
        result[1:] = stacked[1:] * self.scaling
        result[0] = stacked[0] + (stacked[1:] * self.centers).sum()
        return result

    def _rmatvec(self, stacked):
        stacked = np.asarray(stacked).reshape(-1)
        result = np.zeros_like(stacked, dtype=float)
        result[0] = stacked[0]
        result[1:] = stacked[1:] * self.scaling + stacked[0] * self.centers
        return result


def _get_design(X,
                sample_weight,
                standardize=False,
                intercept=True):
    """
    Get a Design matrix, unless `X` already is one.

    Parameters
    ----------
    X: Union[np.ndarray, scipy.sparse, Design]
        Input matrix, of shape `(nobs, nvars)`.
    sample_weight: Optional[np.ndarray]
        Sample weights.
    standardize: bool
        Standardize columns of X according to weights? Default is False.
    intercept: bool
        For a Design, is there an intercept?

    Returns
    -------
    Design
    """
    if isinstance(X, Design):
        return X
    if sample_weight is None:
        sample_weight = np.ones(X.shape[0])
    return Design(X,
                  sample_weight,
                  standardize=standardize,
                  intercept=intercept)


@dataclass
class Penalty(object):
    r"""
    Elastic net penalty parameters.

    Parameters
    ----------
    lambda_val: float
        A single value for the `lambda` hyperparameter.
    alpha: float
        The elasticnet mixing parameter in [0,1]. The penalty is
        defined as $(1-\alpha)/2||\beta||_2^2+\alpha||\beta||_1.$
        `alpha=1` is the lasso penalty, and `alpha=0` the ridge
        penalty. Defaults to 1.
    lower_limits: float
        Vector of lower limits for each coefficient; default
        `-np.inf`. Each of these must be non-positive. Can be
        presented as a single value (which will then be replicated),
        else a vector of length `nvars`.
    upper_limits: float
        Vector of upper limits for each coefficient; default
        `np.inf`. See `lower_limits`.
    penalty_factor: Optional[Union[float, np.ndarray]]
        Separate penalty factors can be applied to each
        coefficient. This is a number that multiplies `lambda_val` to
        allow differential shrinkage. Can be 0 for some variables,
        which implies no shrinkage, and that variable is always
        included in the model. Default is 1 for all variables (and
        implicitly infinity for variables listed in `exclude`). Note:
        the penalty factors are internally rescaled to sum to
        `nvars=X.shape[1]`.
    """
    lambda_val : float
    alpha: float = 1.0
    lower_limits: float = -np.inf
    upper_limits: float = np.inf
    penalty_factor: Optional[Union[float, np.ndarray]] = None
