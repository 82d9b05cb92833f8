from typing import Union
from dataclasses import (dataclass,
                         field)
from functools import partial
import logging

import numpy as np
from numpy.linalg import LinAlgError

from sklearn.base import (BaseEstimator,
                          ClassifierMixin)
from sklearn.preprocessing import LabelEncoder
from sklearn.utils.validation import check_is_fitted

from ._utils import (_parent_dataclass_from_child,
                     _get_data)
from .base import _get_design
from .control import _from_settings
from .irls import IRLS
from .family import (GLMFamilySpec,
                     BinomFamilySpec,
                     GLMState)


@dataclass
class GLMControl(object):
    """
    Control parameters for GLM fitting.

    Defaults are read from the session settings (see `glmnet_control`)
    when the control object is created.

    Parameters
    ----------
    mxitnr: int
        Maximum number of quasi Newton iterations.
    epsnr: float
        Tolerance for quasi Newton iterations.
    big: float
        A large float, effectively `np.inf`.
    logging: bool
        Write info and debug messages to log?
    """
    mxitnr: int = field(default_factory=_from_settings('mxitnr'))
    epsnr: float = field(default_factory=_from_settings('epsnr'))
    big: float = field(default_factory=_from_settings('big'))
    logging: bool = False


@dataclass
class GLMBaseSpec(object):
    """
    Base specification for GLM models.

    Parameters
    ----------
    family: Union[str, sm_family.Family, GLMFamilySpec]
        One-parameter exponential family: a canned name such as
        "poisson", a statsmodels family (any link), or a
        `GLMFamilySpec`.
    fit_intercept: bool
        Should intercept be fitted (default=True) or set to zero (False)?
    standardize: bool
        Standardize columns of X according to weights? Default is False.
    control: GLMControl
        Parameters to control the solver.
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
    family: GLMFamilySpec = field(default_factory=GLMFamilySpec)
    fit_intercept: bool = True
    standardize: bool = False
    control: GLMControl = field(default_factory=GLMControl)
    offset_id: Union[str,int] = None
    weight_id: Union[str,int] = None
    response_id: Union[str,int] = None
    exclude: list = field(default_factory=list)


@dataclass
class GLMRegularizer(object):
    """
    Regularizer for an unpenalized (or ridge) GLM.

    Parameters
    ----------
    fit_intercept: bool
        Should intercept be fitted (default=True) or set to zero (False)?
    ridge_coef: float
        Ridge coefficient for a GLM. Added to objective **after** having
        divided by the sum of the weights.
    exclude: list
        Indices of variables held at zero.
    control: GLMControl
        Control parameters, used for logging.
    """
    fit_intercept: bool = False
    ridge_coef: float = 0
    exclude: list = field(default_factory=list)
    control: GLMControl = None

    def half_step(self,
                  state,
                  oldstate):
        klass = oldstate.__class__
        return klass(0.5 * (oldstate.coef + state.coef),
                     0.5 * (oldstate.intercept + state.intercept))

    def _debug_msg(self,
                   state):
        """Return debug message for state."""
        return f'Coef: {state.coef}, Intercept: {state.intercept}, Objective: {state.obj_val}'

    def check_state(self,
                    state):
        """
        Check state for validity.

        Raises
        ------
        ValueError
            If state contains NaN values.
        """
        if np.any(np.isnan(state.coef)):
            raise ValueError('coef has NaNs')
        if np.isnan(state.intercept):
            raise ValueError('intercept is NaN')

    def newton_step(self,
                    design,
                    pseudo_response,
                    sample_weight,
                    cur_state):
        """
        Weighted (ridge) least squares step on the scale of `design`.

        Parameters
        ----------
        design: Design
            Design matrix.
        pseudo_response: np.ndarray
            Pseudo response for IRLS.
        sample_weight: np.ndarray
            Working weights.
        cur_state: GLMState
            Current state.

        Returns
        -------
        GLMState
            Full Newton step.
        """
        z = pseudo_response
        sqrt_w = np.sqrt(sample_weight)
        nvars = design.shape[1] - 1

        keep = np.ones(nvars, bool)
        keep[list(self.exclude)] = False

        X = design.dense()[:,keep]
        D = np.ones(X.shape[1])
        if self.fit_intercept:
            X = np.concatenate([np.ones((X.shape[0], 1)), X], axis=1)
            D = np.hstack([0, D])
        D = np.diag(D)

        XW = X * sqrt_w[:,None]
        Wz = sqrt_w * z
        Q = XW.T @ XW
        if self.ridge_coef != 0:
            Q += self.ridge_coef * D
        V = XW.T @ Wz

        try:
            beta = np.linalg.solve(Q, V)
        except LinAlgError:
            if self.control is not None and self.control.logging: logging.debug("Error in solve: possible singular matrix, trying pseudo-inverse")
            if self.ridge_coef != 0:
                XW = np.vstack([XW, np.sqrt(self.ridge_coef) * D])
                Wz = np.hstack([Wz, np.zeros(D.shape[0])])
            beta = np.linalg.pinv(XW) @ Wz

        coefnew = np.zeros(nvars)
        if self.fit_intercept:
            intnew = beta[0]
            coefnew[keep] = beta[1:]
        else:
            intnew = 0
            coefnew[keep] = beta

        klass = cur_state.__class__
        return klass(coefnew,
                     intnew)

    def objective(self, state):
        """
        Ridge part of the objective (0 without ridge).
        """
        return self.ridge_coef * (state.coef**2).sum() / 2


@dataclass
class GLMBase(BaseEstimator,
              GLMBaseSpec):
    """
    Base class for GLM models: everything fit through `IRLS` with a
    regularizer supplied by `_get_regularizer`.
    """

    _control_class = GLMControl

    def _get_regularizer(self,
                         nvars=None):
        return GLMRegularizer(fit_intercept=self.fit_intercept,
                              exclude=self.exclude,
                              control=self.control)

    def _get_design(self,
                    X,
                    sample_weight):
        return _get_design(X,
                           sample_weight,
                           standardize=self.standardize,
                           intercept=self.fit_intercept)

    def _finalize_family(self,
                         response):
        return GLMFamilySpec.from_family(self.family, response)

    def get_data_arrays(self, X, y, check=True):
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

    def fit(self,
            X,
            y,
            sample_weight=None,
            regularizer=None,             # last 4 options non sklearn API
            warm_state=None,
            check=True,
            fit_null=True):
        """
        Fit a GLM.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse, Design]
            Input matrix, of shape `(nobs, nvars)`; each row is an observation
            vector.
        y: Union[np.ndarray, pd.DataFrame]
            Response variable, possibly with offset and weight columns
            (see `offset_id`, `weight_id`, `response_id`).
        sample_weight: Optional[np.ndarray]
            Sample weights, used when `weight_id` is None.
        regularizer: GLMRegularizer, optional
            Regularizer used in fitting the model.
        warm_state: GLMState, optional
            Starting state, on the scale of the design.
        check: bool
            Validate `(X,y)`?
        fit_null: bool
            Compute the null deviance?

        Returns
        -------
        self: object
            GLM class instance.
        """
        self._family = self._finalize_family(response=y)

        X, y, response, offset, weight = self.get_data_arrays(X, y, check=check)
        if sample_weight is not None and self.weight_id is None:
            weight = np.asarray(sample_weight, float)

        nobs = X.shape[0]
        sample_weight = weight
        self.sample_weight_ = normed_sample_weight = sample_weight / sample_weight.sum()

        response = np.asarray(response)

        if self.control is None:
            self.control = self._control_class()
        elif type(self.control) == dict:
            self.control = _parent_dataclass_from_child(self._control_class,
                                                        self.control)

        self.design_ = design = self._get_design(X,
                                                 normed_sample_weight)
        nvar = design.shape[1] - 1

        if regularizer is None:
            regularizer = self._get_regularizer(nvars=nvar)
        self.regularizer_ = regularizer

        if fit_null or warm_state is None:
            (null_state,
             self.null_deviance_) = self._family.get_null_deviance(
                                        response=response,
                                        sample_weight=sample_weight,
                                        offset=offset,
                                        fit_intercept=self.fit_intercept)

        if warm_state is not None:
            state = GLMState(warm_state.coef,
                             warm_state.intercept)
        else:
            state = self._family._get_null_state(null_state,
                                                 nvar)
            # null intercept is on the raw scale
            state = design.raw_to_scaled(state)

        def obj_function(response,
                         normed_sample_weight,
                         family,
                         regularizer,
                         state):
            val1 = family.deviance(response,
                                   state.mu,
                                   normed_sample_weight) / 2
            val2 = regularizer.objective(state)
            val = val1 + val2
            if self.control.logging: logging.debug(f'Computing objective, coef: {state.coef}, intercept: {state.intercept}, deviance: {val1}, penalty: {val2}')
            return val

        obj_function = partial(obj_function,
                               response.copy(),
                               normed_sample_weight.copy(),
                               self._family,
                               regularizer)

        state.update(design,
                     self._family,
                     offset,
                     obj_function)

        (converged,
         boundary,
         halved,
         state,
         _) = IRLS(regularizer,
                   self._family,
                   design,
                   response,
                   offset,
                   normed_sample_weight,
                   state,
                   obj_function,
                   self.control)

        if not converged:
            if self.control.logging: logging.debug("Fitting IRLS: algorithm did not converge")
        if boundary:
            if self.control.logging: logging.debug("Fitting IRLS: algorithm stopped at boundary value")

        self.converged_ = converged
        self.boundary_ = boundary
        self.halved_ = halved

        self.deviance_ = self._family.deviance(response,
                                               state.mean_parameter,
                                               sample_weight) # not the normalized weights!

        self._set_coef_intercept(state)

        if self._family.is_gaussian:
            # usual estimate of sigma^2
            self.df_resid_ = nobs - nvar - self.fit_intercept
            self.dispersion_ = self.deviance_ / self.df_resid_
        else:
            self.dispersion_ = 1

        self.state_ = state
        return self

    def predict(self, X, prediction_type='response'):
        """
        Predict outcome of corresponding family.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse]
            Input matrix, of shape `(nobs, nvars)`.
        prediction_type: str
            One of "response" or "link". If "response" return a prediction on the mean scale,
            "link" on the link scale. Defaults to "response".

        Returns
        -------
        prediction: np.ndarray
        """
        check_is_fitted(self, ["coef_"])
        linpred = X @ self.coef_ + self.intercept_ # often called eta
        return self._family.predict(linpred, prediction_type=prediction_type)

    def score(self, X, y, sample_weight=None):
        """
        Weighted log-likelihood (i.e. negative deviance / 2) for test X and y.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse]
            Input matrix.
        y: np.ndarray
            Response variable.
        sample_weight: Optional[np.ndarray]
            Sample weights, default to 1.

        Returns
        -------
        score: float
        """
        mu = self.predict(X, prediction_type='response')
        if sample_weight is None:
            sample_weight = np.ones_like(y, dtype=float)
        return -self._family.deviance(y, mu, sample_weight) / 2

    def _set_coef_intercept(self, state):
        raw_state = self.design_.scaled_to_raw(state)
        self.coef_ = raw_state.coef
        self.intercept_ = raw_state.intercept


@dataclass
class GLM(GLMBase):
    """
    Generalized Linear Model, the unpenalized reference fit.

    Parameters
    ----------
    ridge_coef: float
        Ridge coefficient for a GLM. Added to objective **after** having
        divided by the sum of the weights.
    """
    ridge_coef: float = 0

    def _get_regularizer(self,
                         nvars=None):
        return GLMRegularizer(fit_intercept=self.fit_intercept,
                              ridge_coef=self.ridge_coef,
                              exclude=self.exclude,
                              control=self.control)


@dataclass
class BinomialGLM(ClassifierMixin, GLM):
    """
    Binomial GLM for binary classification.

    Labels are encoded with `LabelEncoder`; the second class is the
    "success".
    """
    family: GLMFamilySpec = field(default_factory=BinomFamilySpec)

    def fit(self,
            X,
            y,
            sample_weight=None,
            regularizer=None,
            warm_state=None,
            check=True,
            fit_null=True):

        if self.response_id is None and self.offset_id is None and self.weight_id is None:
            label_encoder = LabelEncoder().fit(y)
            if len(label_encoder.classes_) > 2:
                raise ValueError("BinomialGLM expecting a binary classification problem.")
            self.classes_ = label_encoder.classes_
            y = label_encoder.transform(y)
        else:
            self.classes_ = np.array([0, 1])

        return super().fit(X,
                           y,
                           sample_weight=sample_weight,
                           regularizer=regularizer,
                           warm_state=warm_state,
                           check=check,
                           fit_null=fit_null)

    def predict(self, X, prediction_type='class'):
        """
        Predict outcome of corresponding family.

        Parameters
        ----------
        X: Union[np.ndarray, scipy.sparse]
            Input matrix.
        prediction_type: str
            One of "response", "link" or "class". Defaults to "class".

        Returns
        -------
        prediction: np.ndarray
        """
        pred = super().predict(X, prediction_type=prediction_type)
        if prediction_type == 'class':
            pred = self.classes_[pred]
        return pred

    def predict_proba(self, X):
        """
        Probability estimates, columns ordered as `self.classes_`.
        """
        prob_1 = self.predict(X, prediction_type='response')
        result = np.empty((prob_1.shape[0], 2))
        result[:,1] = prob_1
        result[:,0] = 1 - prob_1
        return result

    def score(self, X, y, sample_weight=None):
        """
        Binomial log-likelihood (negative deviance / 2) of `y`, labels
        encoded as in `fit`.
        """
        y = np.asarray(y)
        y01 = (y == self.classes_[1]).astype(float)
        # ClassifierMixin.score is accuracy
        return GLMBase.score(self, X, y01, sample_weight=sample_weight)
