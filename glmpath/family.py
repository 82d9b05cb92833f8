from dataclasses import (dataclass,
                         field)
import numpy as np
from statsmodels.genmod.families import family as sm_family
from statsmodels.genmod.families import links as sm_links

from .base import _get_design
from .control import _from_settings

# canned identifiers accepted wherever a family is expected

_CANNED = {'gaussian': sm_family.Gaussian,
           'binomial': sm_family.Binomial,
           'poisson': sm_family.Poisson,
           'gamma': sm_family.Gamma,
           'inverse_gaussian': sm_family.InverseGaussian}

# families whose mean must be strictly positive

_POSITIVE = (sm_family.Poisson,
             sm_family.Gamma,
             sm_family.InverseGaussian,
             sm_family.NegativeBinomial,
             sm_family.Tweedie)


@dataclass
class GLMFamilySpec(object):
    """
    Specification for GLM family and link function.

    A family bundles a link function, a variance function, a
    deviance and an initialization rule. The statsmodels family
    provides the link, variance and deviance; this class adds
    the domain checks used during step halving, the working
    response and weights for IRLS, and the null fit used to start a
    path.

    Parameters
    ----------
    base : sm_family.Family, default=sm_family.Gaussian
        The base family from statsmodels.
    """

    base: sm_family.Family = field(default_factory=sm_family.Gaussian)

    def __post_init__(self):

        self.is_gaussian = (isinstance(self.base, sm_family.Gaussian) and
                            isinstance(self.base.link, sm_links.Identity))
        self.is_binomial = isinstance(self.base, sm_family.Binomial)

    @property
    def name(self):
        return f'{self.base.__class__.__name__}({self.base.link.__class__.__name__})'

    @staticmethod
    def from_family(family,
                    response=None):
        """
        Create a family specification.

        Parameters
        ----------
        family : str, sm_family.Family or GLMFamilySpec
            One of the canned names "gaussian", "binomial",
            "poisson", "gamma", "inverse_gaussian", a statsmodels
            family, or a specification.
        response : array-like
            Response variable (unused).

        Returns
        -------
        GLMFamilySpec
            Family specification object.
        """
        if isinstance(family, GLMFamilySpec):
            return family
        if isinstance(family, str):
            if family.lower() not in _CANNED:
                raise ValueError(f"unknown family '{family}', expecting one of {sorted(_CANNED)}")
            family = _CANNED[family.lower()]()
        if isinstance(family, sm_family.Binomial):
            return BinomFamilySpec(base=family)
        if isinstance(family, sm_family.Family):
            return GLMFamilySpec(base=family)
        raise ValueError(f'cannot build a family from {family!r}')

    def link(self,
             mean_parameter):
        """Apply link function to mean parameter."""
        return self.base.link(mean_parameter)

    def deviance(self,
                 response,
                 mean_parameter,
                 sample_weight=None):
        """
        Compute deviance.

        Parameters
        ----------
        response : array-like
            Response variable.
        mean_parameter : array-like
            Mean parameter values.
        sample_weight : array-like, optional
            Sample weights.

        Returns
        -------
        float
            Deviance value, possibly not finite.
        """
        with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
            if sample_weight is not None:
                return self.base.deviance(response,
                                          mean_parameter,
                                          freq_weights=sample_weight)
            return self.base.deviance(response,
                                      mean_parameter)

    def valid_mean(self,
                   mean_parameter):
        """
        Is every mean inside the domain of the family?
        """
        mu = np.asarray(mean_parameter)
        if not np.all(np.isfinite(mu)):
            return False
        if self.is_binomial:
            return bool(np.all((mu > 0) & (mu < 1)))
        if isinstance(self.base, _POSITIVE):
            return bool(np.all(mu > 0))
        return True

    def valid_link(self,
                   link_parameter):
        """
        Is every linear predictor inside the domain of the inverse link?
        """
        eta = np.asarray(link_parameter)
        if not np.all(np.isfinite(eta)):
            return False
        link = self.base.link
        if isinstance(link, (sm_links.InverseSquared, sm_links.Sqrt)):
            return bool(np.all(eta > 0))
        if isinstance(link, sm_links.InversePower):
            return bool(np.all(eta != 0))
        return True

    def null_fit(self,
                 response,
                 fit_intercept=True,
                 sample_weight=None,
                 offset=None):
        """
        Fit null model (intercept only).

        Without an offset the intercept solves `mu = weighted mean of y`
        exactly; with an offset a few Newton steps are taken from there.

        Parameters
        ----------
        response : array-like
            Response variable.
        fit_intercept : bool, default=True
            Whether to fit intercept.
        sample_weight : array-like, optional
            Sample weights.
        offset : array-like, optional
            Offset values.

        Returns
        -------
        GLMState
            Fitted null state of GLM, with design a column of 1s.
        """
        y = np.asarray(response)
        if sample_weight is None:
            sample_weight = np.ones(y.shape[0])
        sample_weight = np.asarray(sample_weight)

        X1 = np.ones((y.shape[0], 1))
        D = _get_design(X1,
                        sample_weight,
                        standardize=False,
                        intercept=False)

        if fit_intercept:

            ybar = (y * sample_weight).sum() / sample_weight.sum()
            state = GLMState(np.array([self.link(ybar)]), 0)
            state.update(D,
                         self,
                         offset,
                         None)

            if offset is not None:
                for i in range(10):
                    z, w = self.get_response_and_weights(state,
                                                         y,
                                                         offset,
                                                         sample_weight)
                    state = GLMState(np.array([(z*w).sum() / w.sum()]), 0)
                    state.update(D,
                                 self,
                                 offset,
                                 None)
        else:
            state = GLMState(np.zeros(1), 0)
            state.update(D,
                         self,
                         offset,
                         None)
        return state

    def get_null_deviance(self,
                          response,
                          sample_weight=None,
                          offset=None,
                          fit_intercept=True):
        """
        Get null deviance and state.

        Returns
        -------
        null_state : GLMState
            Fitted null state of GLM.
        deviance : float
            Null deviance value.
        """
        state0 = self.null_fit(response,
                               fit_intercept=fit_intercept,
                               sample_weight=sample_weight,
                               offset=offset)
        D = self.deviance(response,
                          state0.mean_parameter,
                          sample_weight=sample_weight)
        return state0, D

    def get_response_and_weights(self,
                                 state,
                                 response,
                                 offset,
                                 sample_weight):
        """
        Get pseudo-response and weights for Newton step.

        Parameters
        ----------
        state : GLMState
            State of GLM.
        response : array-like
            Response variable.
        offset : array-like
            Offset values (already part of `state.link_parameter`).
        sample_weight : array-like
            Sample weights.

        Returns
        -------
        pseudo_response : np.ndarray
            Pseudo-response for (quasi) Newton step, on the scale of
            the linear predictor without offset.
        newton_weights : np.ndarray
            Weights to be used for diagonal in Newton step.
        """
        y = np.asarray(response) # shorthand
        family = self.base

        varmu = family.variance(state.mu)
        if np.any(np.isnan(varmu)): raise ValueError("NAs in V(mu)")
        if np.any(varmu == 0): raise ValueError("0s in V(mu)")

        dmu_deta = family.link.inverse_deriv(state.link_parameter)
        if np.any(np.isnan(dmu_deta)): raise ValueError("NAs in d(mu)/d(eta)")

        newton_weights = sample_weight * dmu_deta**2 / varmu
        pseudo_response = state.eta + (y - state.mu) / dmu_deta

        return pseudo_response, newton_weights

    def _get_null_state(self,
                        null_fit,
                        nvars):
        """
        Null state with `nvars` zero coefficients.
        """
        state = GLMState(coef=np.zeros(nvars),
                         intercept=null_fit.coef[0])
        state.mean_parameter = state.mu = null_fit.mean_parameter
        state.link_parameter = null_fit.link_parameter
        return state

    def predict(self,
                linpred,
                prediction_type='response'):
        """
        Make predictions.

        Parameters
        ----------
        linpred : array-like
            Linear predictor values.
        prediction_type : str, default='response'
            Type of prediction ('response' or 'link').

        Returns
        -------
        array-like
            Predictions.
        """
        if prediction_type == 'link':
            return linpred
        elif prediction_type == 'response':
            return self.base.link.inverse(linpred)
        raise ValueError("prediction should be one of 'response' or 'link'")


@dataclass
class BinomFamilySpec(GLMFamilySpec):
    """
    Binomial family specification, adds class predictions.
    """

    base: sm_family.Family = field(default_factory=sm_family.Binomial)

    def predict(self,
                linpred,
                prediction_type='response'):

        if prediction_type == 'class':
            pi_hat = self.base.link.inverse(linpred)
            return (pi_hat > 0.5).astype(int)
        return super().predict(linpred,
                               prediction_type=prediction_type)


@dataclass
class GLMState(object):
    """
    State of a GLM fit.

    Parameters
    ----------
    coef : np.ndarray
        Coefficient vector.
    intercept : np.ndarray
        Intercept value.
    obj_val : float, default=np.inf
        Objective function value.
    pmin : float, default=1e-9
        Minimum probability for binomial family.
    """

    coef: np.ndarray
    intercept: np.ndarray
    obj_val: float = np.inf
    pmin: float = field(default_factory=_from_settings('pmin'))

    def __post_init__(self):

        self.coef = np.asarray(self.coef, float).reshape(-1)
        self.intercept = float(np.asarray(self.intercept).reshape(()))
        self._stack = np.hstack([self.intercept,
                                 self.coef])

    def update(self,
               design,
               family,
               offset,
               objective=None):
        """
        Recompute linear predictor, mean and objective.

        Overflow in the inverse link leaves non-finite values in
        `mu` (and hence the objective) for the caller to detect.

        Parameters
        ----------
        design : Design
            Design matrix.
        family : GLMFamilySpec
            Family specification.
        offset : array-like, optional
            Offset values.
        objective : callable, optional
            Objective function to evaluate.
        """
        self.linear_predictor = design @ self._stack
        if offset is None:
            self.link_parameter = self.linear_predictor
        else:
            self.link_parameter = self.linear_predictor + offset

        with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
            self.mean_parameter = family.base.link.inverse(self.link_parameter)

        # shorthand
        self.mu = self.mean_parameter
        self.eta = self.linear_predictor

        if family.is_binomial and np.all(np.isfinite(self.mu)):
            self.mu = np.clip(self.mu, self.pmin, 1-self.pmin)
            self.link_parameter = family.base.link(self.mu)

        if objective is not None:
            self.obj_val = objective(self)

    def logl_score(self,
                   family,
                   y,
                   sample_weight):
        """
        Derivative of the log-likelihood with respect to the linear predictor.
        """
        base = family.base
        varmu = base.variance(self.mu)
        dmu_deta = base.link.inverse_deriv(self.link_parameter)

        y = np.asarray(y).reshape(-1)
        return sample_weight * (y - self.mu) * dmu_deta / varmu
