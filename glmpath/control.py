"""
Session-wide numerical settings shared by every path fitter.

These play the role of `glmnet.control` in R: a single set of values,
read by the control dataclasses of each estimator when they are
constructed. Changing a value affects every model built afterwards,
until it is changed again or reset to factory defaults.

>>> from glmpath import glmnet_control
>>> glmnet_control(epsnr=1e-10, mxitnr=100).epsnr
1e-10
>>> glmnet_control(factory=True).epsnr
1e-08
"""
import logging
from dataclasses import dataclass, fields, replace


@dataclass
class ControlSettings(object):
    """
    Internal numerical parameters.

    Parameters
    ----------
    fdev: float
        Minimum fractional change in deviance explained for the path
        to continue.
    devmax: float
        The path stops once the fraction of deviance explained exceeds
        this value.
    eps: float
        Smallest allowed value of `lambda_min_ratio`.
    big: float
        A large float, effectively `np.inf`. Objective values larger
        than this are treated as divergent.
    mnlam: int
        Minimum number of path points fitted before early stopping.
    pmin: float
        Fitted probabilities are clipped to `[pmin, 1-pmin]`.
    exmx: float
        Largest absolute linear predictor allowed on the fast paths.
    itrace: int
        If 1, display a progress bar while fitting a path.
    epsnr: float
        Convergence threshold for the IRLS loop.
    mxitnr: int
        Maximum number of IRLS iterations for each value of `lambda`.
    """
    fdev: float = 1e-5
    devmax: float = 0.999
    eps: float = 1e-6
    big: float = 9.9e35
    mnlam: int = 5
    pmin: float = 1e-9
    exmx: float = 250.
    itrace: int = 0
    epsnr: float = 1e-8
    mxitnr: int = 25


_FACTORY = ControlSettings()
_current = replace(_FACTORY)


def get_control():
    """
    Return a copy of the current session settings.

    Returns
    -------
    ControlSettings
        Current settings.
    """
    return replace(_current)


def glmnet_control(factory=False,
                   **changes):
    """
    View or change the session settings.

    Parameters
    ----------
    factory: bool
        If True, restore the factory defaults (any `changes` are
        applied afterwards).
    changes:
        New values keyed by field name of `ControlSettings`.

    Returns
    -------
    ControlSettings
        A copy of the settings now in force.

    Raises
    ------
    ValueError
        If a name is not one of the fields of `ControlSettings`.
    """
    global _current

    valid = {f.name for f in fields(ControlSettings)}
    unknown = sorted(set(changes) - valid)
    if unknown:
        raise ValueError(f"Unknown control parameter(s) {unknown}. Choose from: {sorted(valid)}")

    if factory:
        _current = replace(_FACTORY)
        logging.debug('glmnet_control: restored factory settings')

    if changes:
        _current = replace(_current, **changes)
        logging.debug(f'glmnet_control: set {changes}')

    return get_control()


def reset_control():
    """Restore factory defaults."""
    return glmnet_control(factory=True)


def _from_settings(name):
    """
    A `default_factory` reading field `name` of the current settings.
    """
    def _factory():
        return getattr(_current, name)
    return _factory
