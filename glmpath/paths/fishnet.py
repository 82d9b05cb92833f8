"""
Poisson regression path with Newton weights `mu`.
"""
from dataclasses import (dataclass,
                         field)

import numpy as np

from statsmodels.genmod.families import family as sm_family

from .fastnet import FastNetMixin
from ..family import GLMFamilySpec


@dataclass
class FishNet(FastNetMixin):
    """FishNet estimator for Poisson regression."""

    family: GLMFamilySpec = field(default_factory=lambda: GLMFamilySpec(base=sm_family.Poisson()))

    _base_family = sm_family.Poisson

    def get_data_arrays(self,
                        X,
                        y,
                        check=True):

        X, y, response, offset, weight = super().get_data_arrays(X, y, check=check)
        if np.any(response < 0):
            raise ValueError("negative responses encountered;  not permitted for Poisson family")
        response = np.asarray(response, float).copy()
        return X, y, response, offset, weight

    def _mean_and_weights(self, eta):
        # linear predictor capped at exmx
        exmx = self.control.exmx
        mu = np.exp(np.clip(eta, -exmx, exmx))
        return mu, mu
