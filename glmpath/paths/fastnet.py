import logging
import warnings

from dataclasses import asdict, dataclass, field

import numpy as np
import pandas as pd
from tqdm import tqdm

from sklearn.exceptions import ConvergenceWarning

from .._elnet_point import elnet_point
from .._utils import (_jerr_elnetfit,
                      _parent_dataclass_from_child)
from ..base import _get_design
from ..control import _from_settings
from ..elnet import (_check_and_set_limits,
                     _check_and_set_vp)
from ..family import GLMState
from ..glmnet import (GLMNet,
                      GLMNetControl)


@dataclass
class FastNetControl(GLMNetControl):
    """
    Control parameters for the closed-form paths.

    Parameters
    ----------
    pmin: float
        Fitted probabilities are clipped to `[pmin, 1-pmin]`.
    exmx: float
        Largest absolute linear predictor passed to `exp`.
    thresh: float
        Convergence threshold for coordinate descent.
    """
    pmin: float = field(default_factory=_from_settings('pmin'))
    exmx: float = field(default_factory=_from_settings('exmx'))
    thresh: float = 1e-7


@dataclass
class FastNetMixin(GLMNet): # base class for closed-form paths
    """
    Path for a canonical link, with Newton weights in closed form.

    Subclasses provide `_base_family` and `_mean_and_weights`, and
    set `_one_step` if a single weighted least squares solve is exact.
    """

    control: FastNetControl = field(default_factory=FastNetControl)

    _one_step = False

    def fit(self,
            X,
            y,
            sample_weight=None,
            warm_state=None):

        self._family = self._finalize_family(response=y)
        base = self._family.base
        if (not isinstance(base, self._base_family) or
            type(base.link) is not type(self._base_family().link)):
            raise ValueError(f'{self.__class__.__name__} expects a {self._base_family.__name__} family, got {self._family.name}')

        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = list(X.columns)
        else:
            self.feature_names_in_ = ['X{}'.format(i) for i in range(X.shape[1])]

        X, y, response, offset, weight = self.get_data_arrays(X, y)
        if sample_weight is not None and self.weight_id is None:
            weight = np.asarray(sample_weight, float)
        response = np.asarray(response, float)

        nobs, nvars = X.shape

        if self.control is None:
            self.control = FastNetControl()
        elif isinstance(self.control, dict):
            self.control = _parent_dataclass_from_child(FastNetControl,
                                                        self.control)
        elif not isinstance(self.control, FastNetControl):
            # a path control lacks pmin and exmx
            self.control = _parent_dataclass_from_child(FastNetControl,
                                                        asdict(self.control))

        self.normed_sample_weight_ = normed_sample_weight = weight / weight.sum()
        self.design_ = design = _get_design(X,
                                            normed_sample_weight,
                                            standardize=self.standardize,
                                            intercept=self.fit_intercept)

        lower, upper = _check_and_set_limits(self, nvars)
        cl = np.asarray([lower * design.scaling_,
                         upper * design.scaling_])
        vp, exclude = _check_and_set_vp(self, nvars, self.exclude)
        ju = np.ones(nvars, bool)
        ju[exclude] = False

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
                                                 vp,
                                                 exclude)
        state = design.raw_to_scaled(GLMState(warm_state.coef,
                                              warm_state.intercept))
        coef, intercept = state.coef.copy(), state.intercept

        # canonical link: score is X'W(y - mu)
        mu, _ = self._mean_and_weights(self._link_parameter(design, coef, intercept, offset))
        score_ = (design.T @ (normed_sample_weight * (response - mu)))[1:]

        user_grid = self._set_lambda_values(score_,
                                            vp,
                                            exclude,
                                            nobs,
                                            nvars)

        coefs_ = []
        intercepts_ = []
        dev_ratios_ = []

        for k, l in enumerate(tqdm(self.lambda_values_,
                                   disable=not self.control.itrace)):

            if self.control.logging: logging.info(f'Fitting parameter {l}')

            coef, intercept = self._fit_lambda(design,
                                               response,
                                               normed_sample_weight,
                                               offset,
                                               l,
                                               vp,
                                               cl,
                                               ju,
                                               coef,
                                               intercept,
                                               k)

            mu, _ = self._mean_and_weights(self._link_parameter(design, coef, intercept, offset))
            deviance = self._family.deviance(response, mu, weight)

            raw_intercept, raw_coef = design.scaled_to_raw(coef=coef,
                                                           intercept=intercept)
            coefs_.append(raw_coef)
            intercepts_.append(raw_intercept)
            dev_ratios_.append(1 - deviance / self.null_deviance_)

            if self._stop_early(dev_ratios_, user_grid):
                break

        self.state_ = GLMState(coef, intercept)
        # no step halving on closed-form paths
        self._set_path(coefs_,
                       intercepts_,
                       dev_ratios_,
                       np.zeros(len(coefs_), bool))
        return self

    # private methods

    def _link_parameter(self,
                        design,
                        coef,
                        intercept,
                        offset):
        eta = design @ np.hstack([intercept, coef])
        if offset is not None:
            eta = eta + offset
        return eta

    def _fit_lambda(self,
                    design,
                    response,
                    sample_weight,
                    offset,
                    lambda_val,
                    vp,
                    cl,
                    ju,
                    coef,
                    intercept,
                    k):
        """
        Newton iterations for a single `lambda`, warm started at
        `(intercept, coef)` on the scale of `design`.
        """
        obj_old = np.inf
        for i in range(self.control.mxitnr):

            linpred = design @ np.hstack([intercept, coef])
            eta = linpred if offset is None else linpred + offset
            mu, dmu_deta = self._mean_and_weights(eta)

            pseudo_response = linpred + (response - mu) / dmu_deta
            wls_fit = elnet_point(design,
                                  pseudo_response,
                                  sample_weight * dmu_deta,
                                  float(lambda_val),
                                  float(self.alpha),
                                  vp,
                                  cl,
                                  ju,
                                  self.fit_intercept,
                                  coef,
                                  intercept,
                                  thr=float(self.control.thresh),
                                  maxit=int(self.control.maxit))

            if wls_fit['jerr'] != 0:
                errmsg = _jerr_elnetfit(wls_fit['jerr'], self.control.maxit, k=k+1)
                if self.control.logging: logging.debug(errmsg['msg'])

            coef, intercept = wls_fit['a'], wls_fit['aint']

            if self._one_step:
                return coef, intercept

            mu, _ = self._mean_and_weights(self._link_parameter(design, coef, intercept, offset))
            penalty = lambda_val * (self.alpha * (vp * np.fabs(coef)).sum() +
                                    (1 - self.alpha) * (vp * coef**2).sum() / 2)
            obj = self._family.deviance(response, mu, sample_weight) / 2 + penalty

            if self.control.logging: logging.debug(f'lambda: {lambda_val}, iteration {i}, objective: {obj}')

            if np.fabs(obj - obj_old) / (0.1 + abs(obj)) < self.control.epsnr:
                return coef, intercept
            obj_old = obj

        warnings.warn(f'Newton iterations did not converge for {k+1}-th lambda value after {self.control.mxitnr} iterations',
                      ConvergenceWarning)
        return coef, intercept
