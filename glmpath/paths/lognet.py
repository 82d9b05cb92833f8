"""
Logistic regression path with Newton weights `p(1-p)`.
"""
from dataclasses import (dataclass,
                         field)

import numpy as np
from scipy.special import expit

from sklearn.preprocessing import LabelEncoder
from statsmodels.genmod.families import family as sm_family

from .fastnet import FastNetMixin
from ..family import (GLMFamilySpec,
                      BinomFamilySpec)


@dataclass
class LogNet(FastNetMixin):
    """LogNet estimator for binomial (logistic) regression.

    Labels are encoded with `LabelEncoder`, the second class being the
    "success"; `predict(X, prediction_type='class')` returns labels.
    """

    family: GLMFamilySpec = field(default_factory=BinomFamilySpec)

    _base_family = sm_family.Binomial

    def get_data_arrays(self,
                        X,
                        y,
                        check=True):
        """Encode the response as 0/1 labels.

        Returns
        -------
        tuple
            Tuple of (X, y, labels, offset, weight).
        """
        X, y, response, offset, weight = super().get_data_arrays(X, y, check=check)
        encoder = LabelEncoder()
        labels = encoder.fit_transform(response).astype(float)
        self.classes_ = encoder.classes_
        if len(encoder.classes_) > 2:
            raise ValueError("LogNet expecting a binary classification problem.")
        return X, y, labels, offset, weight

    def predict(self,
                X,
                prediction_type='response',
                interpolation_grid=None):

        pred = super().predict(X,
                               prediction_type=prediction_type,
                               interpolation_grid=interpolation_grid)
        if prediction_type == 'class':
            pred = self.classes_[pred]
        return pred

    def _mean_and_weights(self, eta):
        pmin = self.control.pmin
        p = np.clip(expit(eta), pmin, 1 - pmin)
        return p, p * (1 - p)
