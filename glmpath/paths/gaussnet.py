"""
Least squares path: a single weighted least squares solve per `lambda`.
"""
from dataclasses import dataclass, field

import numpy as np
from statsmodels.genmod.families import family as sm_family

from .fastnet import FastNetMixin
from ..family import GLMFamilySpec


@dataclass
class GaussNet(FastNetMixin):
    """GaussNet estimator for Gaussian regression."""

    family: GLMFamilySpec = field(default_factory=GLMFamilySpec)

    _base_family = sm_family.Gaussian
    _one_step = True

    def get_data_arrays(self,
                        X,
                        y,
                        check=True):

        X, y, response, offset, weight = super().get_data_arrays(X, y, check=check)
        response = np.asarray(response, float)
        ybar = (response * weight).sum() / weight.sum()
        if ((response - ybar)**2 * weight).sum() == 0:
            raise ValueError("response is constant; GaussNet cannot fit a path")
        return X, y, response, offset, weight

    def _mean_and_weights(self, eta):
        return eta, np.ones_like(eta)
