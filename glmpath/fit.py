"""
Entry point choosing between the closed-form paths and the generic
family-object path.
"""
import logging

from .glmnet import GLMNet
from .paths import (GaussNet,
                    LogNet,
                    FishNet)

_FAST_PATHS = {'gaussian': GaussNet,
               'binomial': LogNet,
               'poisson': FishNet}


def glmnet(X,
           y,
           family='gaussian',
           sample_weight=None,
           **params):
    """
    Fit an elastic net regularization path.

    Parameters
    ----------
    X: Union[np.ndarray, scipy.sparse, pd.DataFrame]
        Input matrix, of shape `(nobs, nvars)`.
    y: Union[np.ndarray, pd.DataFrame]
        Response variable.
    family: Union[str, sm_family.Family, GLMFamilySpec]
        One of "gaussian", "binomial" or "poisson", which selects a
        closed-form path (`GaussNet`, `LogNet`, `FishNet`), or a family
        object, which selects `GLMNet`.
    sample_weight: Optional[np.ndarray]
        Observation weights.
    params:
        Passed to the estimator, e.g. `alpha`, `nlambda`,
        `lambda_values`, `penalty_factor`, `control`.

    Returns
    -------
    GLMNet
        The fitted estimator.

    Raises
    ------
    ValueError
        If `family` is a string other than those above.

    Examples
    --------
    >>> from statsmodels.genmod.families import Poisson, links
    >>> fit = glmnet(X, y, family='poisson')                            # doctest: +SKIP
    >>> fit = glmnet(X, y, family=Poisson(link=links.Sqrt()))           # doctest: +SKIP
    """
    if isinstance(family, str):
        if family.lower() not in _FAST_PATHS:
            raise ValueError(f"unknown family '{family}', expecting one of {sorted(_FAST_PATHS)} or a family object")
        estimator = _FAST_PATHS[family.lower()](**params)
    else:
        estimator = GLMNet(family=family, **params)

    logging.debug(f'glmnet: fitting with {estimator.__class__.__name__}')
    return estimator.fit(X, y, sample_weight=sample_weight)
