from dataclasses import dataclass, field, InitVar
from typing import Optional

import numpy as np

from sklearn.utils.validation import check_is_fitted

from .base import Penalty
from .control import _from_settings
from .elnet import (ElNet,
                    ElNetControl,
                    ElNetSpec,
                    _check_and_set_vp)
from .glm import GLM
from .family import GLMFamilySpec


@dataclass
class RegGLMControl(ElNetControl):
    """
    Control parameters for regularized GLM fitting.

    Parameters
    ----------
    thresh: float
        Convergence threshold for coordinate descent. Each inner
        coordinate-descent loop continues until the maximum weighted
        squared change of any coefficient is less than thresh.
        Default value is `1e-10`.
    mxitnr: int
        Maximum number of quasi Newton iterations.
    epsnr: float
        Tolerance for quasi Newton iterations.
    big: float
        A large float, effectively `np.inf`.
    logging: bool
        Write info and debug messages to log?
    """
    thresh: float = 1e-10
    mxitnr: int = field(default_factory=_from_settings('mxitnr'))
    epsnr: float = field(default_factory=_from_settings('epsnr'))
    big: float = field(default_factory=_from_settings('big'))
    logging: bool = False


@dataclass
class RegGLMSpec(ElNetSpec):
    """
    Specification for regularized GLM models.

    Parameters
    ----------
    family: GLMFamilySpec
        Specification of one-parameter exponential family, includes some
        additional methods.
    control: RegGLMControl
        Parameters to control the solver.
    """
    family: GLMFamilySpec = field(default_factory=GLMFamilySpec)
    control: RegGLMControl = field(default_factory=RegGLMControl)


@dataclass
class ElNetRegularizer(Penalty):
    """
    Elastic Net regularizer for GLM fitting.

    Limits are on the scale of the design the regularizer is used
    with.

    Parameters
    ----------
    fit_intercept: bool
        Should intercept be fitted (default=True) or set to zero (False)?
    nvars: int
        Number of variables.
    control: RegGLMControl
        Control parameters.
    exclude: list
        Indices of variables to be excluded from the model. Default is
        `[]`. Equivalent to an infinite penalty factor.
    """
    fit_intercept: bool = False
    nvars: InitVar[Optional[int]] = None
    control: InitVar[Optional[RegGLMControl]] = None
    exclude: list = field(default_factory=list)

    def __post_init__(self, nvars, control):

        self.lower_limits = np.asarray(self.lower_limits, float)
        if self.lower_limits.shape == (): # a single float
            self.lower_limits = np.ones(nvars) * self.lower_limits

        self.upper_limits = np.asarray(self.upper_limits, float)
        if self.upper_limits.shape == (): # a single float
            self.upper_limits = np.ones(nvars) * self.upper_limits

        # rescaled factors, used for the objective
        self.vp_, self.exclude = _check_and_set_vp(self, nvars, self.exclude)

        self.elnet_estimator = ElNet(lambda_val=self.lambda_val,
                                     alpha=self.alpha,
                                     control=control,
                                     lower_limits=self.lower_limits,
                                     upper_limits=self.upper_limits,
                                     fit_intercept=self.fit_intercept,
                                     penalty_factor=self.penalty_factor,
                                     standardize=False,
                                     exclude=self.exclude)

    def half_step(self,
                  state,
                  oldstate):
        klass = oldstate.__class__
        return klass(0.5 * (oldstate.coef + state.coef),
                     0.5 * (oldstate.intercept + state.intercept))

    def _debug_msg(self,
                   state):
        """Return debug message for state."""
        return f'lambda: {self.lambda_val}, Coef: {state.coef}, Intercept: {state.intercept}, Objective: {state.obj_val}'

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
                    normed_sample_weight,
                    cur_state):
        """
        Penalized weighted least squares step, warm started at `cur_state`.

        Parameters
        ----------
        design: Design
            Design matrix.
        pseudo_response: np.ndarray
            Pseudo response for IRLS.
        normed_sample_weight: np.ndarray
            Working weights.
        cur_state: GLMState
            Current state.

        Returns
        -------
        GLMState
            Full (proximal) Newton step.
        """
        z = pseudo_response
        # make sure to set lambda_val to self.lambda_val
        self.elnet_estimator.lambda_val = self.lambda_val

        warm = (cur_state.coef,
                cur_state.intercept,
                cur_state.linear_predictor) # just X\beta -- doesn't include offset

        elnet_fit = self.elnet_estimator.fit(design,
                                             z,
                                             sample_weight=normed_sample_weight,
                                             warm=warm,
                                             check=False)

        klass = cur_state.__class__
        return klass(elnet_fit.scaled_coef_,
                     elnet_fit.scaled_intercept_)

    def objective(self, state):
        """
        Elastic net penalty of `state`.
        """
        lasso = self.alpha * (self.vp_ * np.fabs(state.coef)).sum()
        ridge = (1 - self.alpha) * (self.vp_ * state.coef**2).sum() / 2
        return self.lambda_val * (lasso + ridge)


@dataclass
class RegGLM(GLM,
             RegGLMSpec):
    """
    Regularized Generalized Linear Model for a single value of `lambda`.

    Minimizes `deviance / (2 * sum(w)) + lambda_val * penalty` by IRLS,
    each Newton step solved by coordinate descent.
    """
    control: RegGLMControl = field(default_factory=RegGLMControl)

    _control_class = RegGLMControl

    def _get_regularizer(self,
                         nvars=None):
        # self.design_ will have been set by now

        check_is_fitted(self, ["design_"])
        if nvars is None:
            nvars = self.design_.X.shape[1]

        return ElNetRegularizer(lambda_val=self.lambda_val,
                                alpha=self.alpha,
                                penalty_factor=self.penalty_factor,
                                lower_limits=np.asarray(self.lower_limits) * self.design_.scaling_,
                                upper_limits=np.asarray(self.upper_limits) * self.design_.scaling_,
                                fit_intercept=self.fit_intercept,
                                nvars=nvars,
                                control=self.control,
                                exclude=self.exclude)

