import logging

from dataclasses import dataclass, field
from typing import Union, Optional

import numpy as np
import pandas as pd
from scipy.interpolate import interp1d
from tqdm import tqdm

from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted

from .base import _get_design
from .control import _from_settings
from .regularized_glm import (RegGLMControl,
                              RegGLM)
from .glm import (GLM,
                  GLMControl)
from .family import (GLMFamilySpec,
                     GLMState)
from ._utils import (_get_data,
                     _parent_dataclass_from_child)


@dataclass
class GLMNetControl(RegGLMControl):
    """
    Control parameters for GLMNet fitting.

    Defaults of all but `logging` and `thresh` are read from the
    session settings (see `glmnet_control`).

    Parameters
    ----------
    fdev: float
        Minimum fractional change in deviance explained for the
        path to continue.
    devmax: float
        Path stops once the fraction of deviance explained exceeds this.
    eps: float
        Smallest allowed `lambda_min_ratio`.
    mnlam: int
        Minimum number of path points before early stopping.
    itrace: int
        Show a progress bar if 1.
    logging: bool
        Write info and debug messages to log?
    """
    fdev: float = field(default_factory=_from_settings('fdev'))
    devmax: float = field(default_factory=_from_settings('devmax'))
    eps: float = field(default_factory=_from_settings('eps'))
    mnlam: int = field(default_factory=_from_settings('mnlam'))
    itrace: int = field(default_factory=_from_settings('itrace'))
    logging: bool = False


@dataclass
class GLMNetSpec(object):
    r"""
    Specification for GLMNet models.

    Parameters
    ----------
    lambda_values: Optional[np.ndarray]
        An array of `lambda` hyperparameters. All of them are fitted,
        in decreasing order.
    lambda_min_ratio: float
        Ratio of lambda_max to smallest lambda.
        Used to set sequence of lamdba values.
        Values are equally spaced on a log-scale from lambda_max to
        lambda_max * lambda_min_ratio. Defaults to `1e-2` if
        `nobs < nvars` else `1e-4`.
    nlambda: int
        Number of values on data-dependent grid of lambda values.
    alpha: float
        The elasticnet mixing parameter in [0,1]. The penalty is
        defined as $(1-\alpha)/2||\beta||_2^2+\alpha||\beta||_1.$
        `alpha=1` is the lasso penalty, and `alpha=0` the ridge
        penalty. Defaults to 1.
    lower_limits: float
        Vector of lower limits for each coefficient; default
        `-np.inf`. Each of these must be non-positive.
    upper_limits: float
        Vector of upper limits for each coefficient; default
        `np.inf`. See `lower_limits`.
    penalty_factor: Optional[Union[float, np.ndarray]]
        Separate penalty factors for each coefficient, rescaled to
        sum to `nvars`. A 0 means the variable is never shrunk.
    fit_intercept: bool
        Should intercept be fitted (default=True) or set to zero (False)?
    standardize: bool
        Standardize columns of X according to weights? Default is True.
    family: GLMFamilySpec
        Family object: a statsmodels family (any link) or a
        `GLMFamilySpec`. Canned names are accepted too.
    control: GLMNetControl
        Parameters to control the solver.
    regularized_estimator: BaseEstimator
        Estimator class used for fitting each point on path.
    offset_id: Union[str,int]
        Column identifier in `y`. (Optional)
    weight_id: Union[str,int]
        Weight identifier in `y`. (Optional)
    response_id: Union[str,int]
        Response identifier in `y`. (Optional)
    exclude: list
        Indices of variables to be excluded from the model. Default is
        `[]`. Equivalent to an infinite penalty factor.
    """
    lambda_values: Optional[np.ndarray] = None
    lambda_min_ratio: float = None
    nlambda: int = 100
    alpha: float = 1.0
    lower_limits: float = -np.inf
    upper_limits: float = np.inf
    penalty_factor: Optional[Union[float, np.ndarray]] = None
    fit_intercept: bool = True
    standardize: bool = True
    family: GLMFamilySpec = field(default_factory=GLMFamilySpec)
    control: GLMNetControl = field(default_factory=GLMNetControl)
    regularized_estimator: BaseEstimator = RegGLM
    offset_id: Union[str,int] = None
    weight_id: Union[str,int] = None
    response_id: Union[str,int] = None
    exclude: list = field(default_factory=list)


@dataclass
class GLMNet(BaseEstimator,
             GLMNetSpec):
    """
    Generalized linear models with elastic net regularization, fit
    along a decreasing sequence of `lambda` values.

    Each point on the path is a `RegGLM` fit by IRLS with step
    halving, warm started from the previous point.
    """

    def get_data_arrays(self,
                        X,
                        y,
                        check=True):
        """
        Get data arrays for fitting.

        Returns
        -------
        tuple
            (X, y, response, offset, weight)
        """
        return _get_data(self,
                         X,
                         y,
                         offset_id=self.offset_id,
                         response_id=self.response_id,
                         weight_id=self.weight_id,
                         check=check)

    def _finalize_family(self,
                         response):
        return GLMFamilySpec.from_family(self.family, response)

    def fit(self,
            X,
            y,
            sample_weight=None,
            warm_state=None):
        """
        Fit GLMNet model.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse, pd.DataFrame]
            Input matrix, of shape `(nobs, nvars)`; each row is an observation
            vector.
        y: Union[np.ndarray, pd.DataFrame]
            Response variable, possibly with offset and weight columns.
        sample_weight: Optional[np.ndarray]
            Sample weights, used when `weight_id` is None.
        warm_state: GLMState, optional
            Starting state on the raw scale of `X`.

        Returns
        -------
        self: object
            GLMNet class instance.
        """
        self._family = self._finalize_family(response=y)

        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = list(X.columns)
        else:
            self.feature_names_in_ = ['X{}'.format(i) for i in range(X.shape[1])]

        X, y, response, offset, weight = self.get_data_arrays(X, y)
        if sample_weight is not None and self.weight_id is None:
            weight = np.asarray(sample_weight, float)

        nobs, nvars = X.shape

        if self.control is None:
            self.control = GLMNetControl()
        elif isinstance(self.control, dict):
            self.control = _parent_dataclass_from_child(GLMNetControl,
                                                        self.control)

        self.normed_sample_weight_ = normed_sample_weight = weight / weight.sum()
        self.design_ = design = _get_design(X,
                                            normed_sample_weight,
                                            standardize=self.standardize,
                                            intercept=self.fit_intercept)

        self.reg_glm_est_ = self.regularized_estimator(
                               lambda_val=self.control.big,
                               family=self._family,
                               alpha=self.alpha,
                               penalty_factor=self.penalty_factor,
                               lower_limits=self.lower_limits,
                               upper_limits=self.upper_limits,
                               fit_intercept=self.fit_intercept,
                               standardize=self.standardize,
                               control=self.control,
                               offset_id=self.offset_id,
                               weight_id=self.weight_id,
                               response_id=self.response_id,
                               exclude=self.exclude
                               )
        self.reg_glm_est_.design_ = design
        regularizer_ = self.reg_glm_est_._get_regularizer(nvars=nvars)

        (null_fit,
         self.null_deviance_) = self._family.get_null_deviance(
                                    response=response,
                                    sample_weight=weight,
                                    offset=offset,
                                    fit_intercept=self.fit_intercept)

        if warm_state is None:
            warm_state = self._get_initial_state(X,
                                                 y,
                                                 response,
                                                 weight,
                                                 null_fit,
                                                 regularizer_.vp_,
                                                 regularizer_.exclude)
        state = design.raw_to_scaled(GLMState(warm_state.coef,
                                              warm_state.intercept))
        state.update(design,
                     self._family,
                     offset)

        logl_score = state.logl_score(self._family,
                                      response,
                                      normed_sample_weight)
        score_ = (design.T @ logl_score)[1:]

        user_grid = self._set_lambda_values(score_,
                                            regularizer_.vp_,
                                            regularizer_.exclude,
                                            nobs,
                                            nvars)

        coefs_ = []
        intercepts_ = []
        dev_ratios_ = []
        halved_ = []

        for l in tqdm(self.lambda_values_,
                      disable=not self.control.itrace):

            if self.control.logging: logging.info(f'Fitting parameter {l}')
            self.reg_glm_est_.lambda_val = regularizer_.lambda_val = l
            self.reg_glm_est_.fit(design,
                                  y,
                                  sample_weight=weight,
                                  regularizer=regularizer_,
                                  warm_state=state,
                                  check=False,
                                  fit_null=False)

            self.state_ = state = self.reg_glm_est_.state_

            coefs_.append(self.reg_glm_est_.coef_.copy())
            intercepts_.append(self.reg_glm_est_.intercept_)
            dev_ratios_.append(1 - self.reg_glm_est_.deviance_ / self.null_deviance_)
            halved_.append(self.reg_glm_est_.halved_)

            if self._stop_early(dev_ratios_, user_grid):
                break

        self._set_path(coefs_,
                       intercepts_,
                       dev_ratios_,
                       halved_)
        return self

    def predict(self,
                X,
                prediction_type='response',
                interpolation_grid=None):
        """
        Predict using the fitted GLMNet model.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse]
            Input matrix, of shape `(nobs, nvars)`.
        prediction_type: str
            One of "response" or "link" ("class" for binomial).
            Defaults to "response".
        interpolation_grid: np.ndarray, optional
            Values of `lambda` at which to predict, coefficients
            interpolated linearly in `lambda`.

        Returns
        -------
        np.ndarray
            Predictions, one column per `lambda` value. Without
            `interpolation_grid` there are as many columns as
            requested values of `lambda`, the last fitted column
            repeated if the path stopped early.
        """
        check_is_fitted(self, ["coefs_"])

        if interpolation_grid is not None:
            grid_ = np.asarray(interpolation_grid)
            coefs_, intercepts_ = self.interpolate_coefs(grid_)
        else:
            grid_ = None
            coefs_, intercepts_ = self.coefs_, self.intercepts_

        intercepts_ = np.atleast_1d(intercepts_)
        coefs_ = np.atleast_2d(coefs_)
        linear_pred_ = (X @ coefs_.T) + intercepts_[None,:]
        linear_pred_ = np.asarray(linear_pred_)
        if prediction_type != 'link':
            fits = self._family.predict(linear_pred_, prediction_type=prediction_type)
        else:
            fits = linear_pred_

        if grid_ is not None:
            if not grid_.shape:
                return np.squeeze(fits)
            return fits

        # pad with last value
        value = np.empty((fits.shape[0], self.nlambda_), fits.dtype)
        value[:,:fits.shape[1]] = fits
        value[:,fits.shape[1]:] = fits[:,-1][:,None]
        return value

    def interpolate_coefs(self,
                          interpolation_grid):
        """
        Interpolate coefficients to a new lambda grid.

        Values outside the fitted range are clipped to it.

        Parameters
        ----------
        interpolation_grid: np.ndarray
            New lambda values for interpolation.

        Returns
        -------
        tuple
            (coefs_, intercepts_) interpolated to the new grid.
        """
        check_is_fitted(self, ["coefs_"])

        L = self.lambda_values_
        interpolation_grid = np.asarray(interpolation_grid, float)
        scalar = interpolation_grid.shape == ()
        grid = np.clip(np.atleast_1d(interpolation_grid), L.min(), L.max())

        if L.shape[0] > 1:
            idx_ = interp1d(L, np.arange(L.shape[0]).astype(float))(grid)
        else:
            idx_ = np.zeros_like(grid)

        lo = np.floor(idx_).astype(int)
        hi = np.ceil(idx_).astype(int)
        w_ = (idx_ - lo)

        coefs_ = (1 - w_)[:,None] * self.coefs_[lo] + w_[:,None] * self.coefs_[hi]
        intercepts_ = (1 - w_) * self.intercepts_[lo] + w_ * self.intercepts_[hi]

        if scalar:
            return coefs_[0], intercepts_[0]
        return coefs_, intercepts_

    # private methods

    def _get_initial_state(self,
                           X,
                           y,
                           response,
                           sample_weight,
                           null_fit,
                           penalty_factor,
                           exclude):
        """
        Starting point for the path, on the raw scale: unpenalized
        variables are fit by a GLM, all others are 0.
        """
        n, p = X.shape
        keep = penalty_factor == 0
        keep[exclude] = False

        coef_ = np.zeros(p)

        if keep.sum() > 0:
            X_keep = X[:,np.flatnonzero(keep)]

            glm = GLM(fit_intercept=self.fit_intercept,
                      family=self._family,
                      offset_id=self.offset_id,
                      weight_id=self.weight_id,
                      response_id=self.response_id,
                      control=GLMControl(logging=self.control.logging))
            if self.offset_id is None and self.weight_id is None and self.response_id is None:
                y = response
            glm.fit(X_keep, y, sample_weight=sample_weight)
            coef_[keep] = glm.coef_
            intercept_ = glm.intercept_
        elif self.fit_intercept:
            intercept_ = null_fit.coef[0] # design of null fit is a column of 1s
        else:
            intercept_ = 0
        return GLMState(coef=coef_, intercept=intercept_)

    def _set_lambda_values(self,
                           score,
                           penalty_factor,
                           exclude,
                           nobs,
                           nvars):
        """
        Set `lambda_values_`, `lambda_max_` and `nlambda_`.

        Returns
        -------
        bool
            True if the values were supplied by the user.
        """
        if self.lambda_values is not None:
            lambda_values = np.asarray(self.lambda_values, float).reshape(-1)
            if np.any(lambda_values < 0):
                raise ValueError('lambdas should be non-negative')
            self.lambda_values_ = np.sort(lambda_values)[::-1]
            self.lambda_max_ = self.lambda_values_[0]
            self.nlambda_ = self.lambda_values_.shape[0]
            return True

        pf = penalty_factor
        score = score / (pf + (pf <= 0))
        score[pf <= 0] = 0
        score[exclude] = 0
        self.lambda_max_ = np.fabs(score).max() / max(self.alpha, 1e-3)

        if self.lambda_min_ratio is None:
            lambda_min_ratio = 1e-2 if nobs < nvars else 1e-4
        else:
            lambda_min_ratio = self.lambda_min_ratio
        if lambda_min_ratio >= 1:
            raise ValueError('lambda_min_ratio should be less than 1')
        lambda_min_ratio = max(lambda_min_ratio, self.control.eps)

        self.lambda_values_ = np.exp(np.linspace(np.log(1),
                                                 np.log(lambda_min_ratio),
                                                 self.nlambda))
        self.lambda_values_ *= self.lambda_max_
        self.nlambda_ = self.nlambda
        return False

    def _stop_early(self,
                    dev_ratios,
                    user_grid):
        # a user supplied grid is fit in full
        if user_grid or len(dev_ratios) < max(self.control.mnlam, 2):
            return False
        if dev_ratios[-1] > self.control.devmax:
            if self.control.logging: logging.info('Stopping path: fraction of deviance explained above devmax')
            return True
        if dev_ratios[-1] - dev_ratios[-2] < self.control.fdev * dev_ratios[-1]:
            if self.control.logging: logging.info('Stopping path: change in fraction of deviance explained below fdev')
            return True
        return False

    def _set_path(self,
                  coefs,
                  intercepts,
                  dev_ratios,
                  halved):

        self.coefs_ = np.array(coefs)
        self.intercepts_ = np.array(intercepts)
        self.halved_ = np.array(halved, bool)

        nfit = self.coefs_.shape[0]
        self.lambda_values_ = self.lambda_values_[:nfit]

        self.summary_ = pd.DataFrame({'Fraction Deviance Explained':dev_ratios},
                                     index=pd.Series(self.lambda_values_,
                                                     name='lambda'))
        df = (self.coefs_ != 0).sum(1)
        self.summary_.insert(0, 'Degrees of Freedom', df)

        self.coef_path_ = CoefPath(
            coefs=self.coefs_,
            intercepts=self.intercepts_,
            lambda_values=self.lambda_values_,
            feature_names=self.feature_names_in_,
            fracdev=np.array(dev_ratios)
        )


@dataclass
class CoefPath(object):
    """
    Container for coefficient paths along the regularization path.

    Attributes
    ----------
    coefs : np.ndarray
        Array of coefficients for each lambda value (n_lambdas, n_features).
    intercepts : np.ndarray
        Array of intercepts for each lambda value (n_lambdas,).
    lambda_values : np.ndarray
        Array of lambda values along the path.
    feature_names : list or np.ndarray
        Names of the features (columns).
    fracdev : np.ndarray, optional
        Fraction of deviance explained at each lambda value.
    """
    coefs: np.ndarray
    intercepts: np.ndarray
    lambda_values: np.ndarray
    feature_names: list
    fracdev: Optional[np.ndarray] = None

    def to_frame(self):
        """
        Coefficients as a `pd.DataFrame` indexed by `lambda`, with an
        "intercept" column first.
        """
        df = pd.DataFrame(self.coefs,
                          columns=self.feature_names,
                          index=pd.Index(self.lambda_values, name='lambda'))
        df.insert(0, 'intercept', self.intercepts)
        return df
