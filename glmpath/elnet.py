import logging

from dataclasses import dataclass, field

import numpy as np

from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.linear_model import LinearRegression
from sklearn.utils import check_X_y

from ._elnet_point import elnet_point
from .base import (Penalty,
                   Design,
                   _get_design)
from ._utils import _jerr_elnetfit


@dataclass
class ElNetControl(object):
    """Control parameters for the coordinate descent solver.

    Parameters
    ----------
    thresh : float, default=1e-7
        Convergence threshold for coordinate descent. Each inner
        coordinate-descent loop continues until the maximum weighted
        squared change of any coefficient is less than `thresh`.
    maxit : int, default=100000
        Maximum number of passes over the variables.
    big : float, default=9.9e35
        Large number standing in for infinite limits.
    logging : bool, default=False
        Whether to enable debug logging.
    """

    thresh: float = 1e-7
    maxit: int = 100000
    big: float = 9.9e35
    logging: bool = False


@dataclass
class ElNetSpec(Penalty):
    """Specification for ElNet model parameters.

    Parameters
    ----------
    fit_intercept : bool, default=True
        Whether to fit an intercept term.
    standardize : bool, default=True
        Whether to standardize features.
    control : ElNetControl, optional
        Control parameters for optimization.
    exclude : list, default_factory=list
        Indices of variables held at zero.
    """

    fit_intercept: bool = True
    standardize: bool = True
    control: ElNetControl = field(default_factory=ElNetControl)
    exclude: list = field(default_factory=list)


@dataclass
class ElNet(BaseEstimator,
            RegressorMixin,
            ElNetSpec):
    """Elastic net penalized weighted least squares.

    This is the inner solver of the IRLS loop: given a working
    response and working weights it solves one elastic net problem by
    coordinate descent, warm started from the current coefficients.
    It supports both dense and sparse input matrices.
    """

    def fit(self,
            X,
            y,
            sample_weight=None,
            warm=None,
            check=True):
        """Fit the elastic net model.

        Parameters
        ----------
        X : array-like, sparse matrix or Design
            Training data. A `Design` is used as is, ignoring
            `standardize` and `fit_intercept`.
        y : array-like, shape (n_samples,)
            Target values.
        sample_weight : array-like, shape (n_samples,), optional
            Sample weights, defaults to `1/n_samples`.
        warm : tuple, optional
            Warm start `(coef, intercept)` or `(coef, intercept, eta)`,
            on the scale of the design.
        check : bool, default=True
            Whether to perform input validation.

        Returns
        -------
        self : object
            Returns self.
        """
        if check and not isinstance(X, Design):
            X, y = check_X_y(X, y,
                             accept_sparse=['csc'],
                             multi_output=False,
                             estimator=self)
        y = np.asarray(y, float)

        nobs = X.shape[0]
        if sample_weight is None:
            sample_weight = np.ones(nobs) / nobs
        sample_weight = np.asarray(sample_weight, float)

        design = _get_design(X,
                             sample_weight,
                             standardize=self.standardize,
                             intercept=self.fit_intercept)
        nvars = design.shape[1] - 1

        if self.control is None:
            self.control = ElNetControl()

        lower, upper = _check_and_set_limits(self, nvars)
        unbounded = np.all(lower <= -self.control.big) and np.all(upper >= self.control.big)
        if not isinstance(X, Design):
            # limits are on the raw scale
            lower = lower * design.scaling_
            upper = upper * design.scaling_
        penalty_factor, exclude = _check_and_set_vp(self, nvars, self.exclude)

        if self.lambda_val == 0 and unbounded:

            # plain weighted least squares

            keep = np.ones(nvars, bool)
            keep[exclude] = False
            coef = np.zeros(nvars)
            if keep.sum() > 0:
                lm = LinearRegression(fit_intercept=self.fit_intercept)
                lm.fit(design.dense()[:,keep], y, sample_weight)
                coef[keep] = lm.coef_
                intercept = lm.intercept_
            else:
                intercept = ((y * sample_weight).sum() / sample_weight.sum()
                             if self.fit_intercept else 0.)
            self.scaled_coef_ = coef
            self.scaled_intercept_ = float(intercept)
            self.n_passes_, self.jerr_ = 0, 0

        else:

            if warm is not None:
                coef0, intercept0 = warm[0], warm[1]
            else:
                coef0, intercept0 = np.zeros(nvars), 0.

            ju = np.ones(nvars, bool)
            ju[exclude] = False

            if self.control.logging: logging.debug(f'Elnet warm coef: {coef0}, Elnet warm intercept: {intercept0}')

            wls_fit = elnet_point(design,
                                  y,
                                  sample_weight,
                                  float(self.lambda_val),
                                  float(self.alpha),
                                  penalty_factor,
                                  np.asarray([lower, upper]),
                                  ju,
                                  self.fit_intercept,
                                  coef0,
                                  intercept0,
                                  thr=float(self.control.thresh),
                                  maxit=int(self.control.maxit))

            # error code < 0: non-fatal, return what we have

            if wls_fit['jerr'] != 0:
                errmsg = _jerr_elnetfit(wls_fit['jerr'], self.control.maxit)
                if self.control.logging: logging.debug(errmsg['msg'])

            if self.control.logging: logging.debug(f'Elnet coef: {wls_fit["a"]}, Elnet intercept: {wls_fit["aint"]}')

            self.scaled_coef_ = wls_fit['a']
            self.scaled_intercept_ = wls_fit['aint']
            self.n_passes_, self.jerr_ = wls_fit['nlp'], wls_fit['jerr']

        self.design_ = design
        self.intercept_, self.coef_ = design.scaled_to_raw(coef=self.scaled_coef_,
                                                           intercept=self.scaled_intercept_)
        return self


def _check_and_set_limits(spec, nvars):
    """Broadcast coefficient limits to length `nvars`.

    Infinite limits are replaced by `spec.control.big`.

    Returns
    -------
    lower_limits, upper_limits : np.ndarray
    """
    limits = []
    for name, value in [('lower_limits', spec.lower_limits),
                        ('upper_limits', spec.upper_limits)]:
        value = np.asarray(value, float).reshape(-1)
        if value.shape[0] == 1:
            value = value[0] * np.ones(nvars)
        value = value[:nvars].copy()
        if value.shape[0] < nvars:
            raise ValueError(f'{name} should have shape {(nvars,)}, but has shape {value.shape}')
        value[value == -np.inf] = -spec.control.big
        value[value == np.inf] = spec.control.big
        limits.append(value)

    lower_limits, upper_limits = limits
    if np.any(lower_limits > 0):
        raise ValueError('lower limits should be <= 0')
    if np.any(upper_limits < 0):
        raise ValueError('upper limits should be >= 0')
    return lower_limits, upper_limits


def _check_and_set_vp(spec, nvars, exclude):
    """Check penalty factors and merge infinite ones into `exclude`.

    Returns
    -------
    penalty_factor : np.ndarray
        Non-negative factors rescaled to sum to `nvars`.
    exclude : list
        Indices of variables held at zero.
    """
    penalty_factor = spec.penalty_factor
    if penalty_factor is None:
        penalty_factor = np.ones(nvars)
    penalty_factor = np.asarray(penalty_factor, float).reshape(-1)
    if penalty_factor.shape[0] == 1:
        penalty_factor = penalty_factor[0] * np.ones(nvars)
    penalty_factor = penalty_factor.copy()

    exclude = list(np.asarray(exclude, int))
    exclude.extend(np.nonzero(np.isinf(penalty_factor))[0])
    exclude = [int(e) for e in np.unique(exclude)]

    if len(exclude) > 0:
        if max(exclude) >= nvars:
            raise ValueError("Some excluded variables out of range")
        penalty_factor[exclude] = 1

    vp = np.maximum(0, penalty_factor)
    if vp.sum() > 0:
        vp = vp * nvars / vp.sum()
    return vp, exclude
