from dataclasses import fields

import numpy as np
import pandas as pd

from sklearn.utils import check_X_y


def _get_data(estimator,
              X,
              y,
              offset_id=None,
              weight_id=None,
              response_id=None,
              check=True):
    """
    Split `y` into response, offset and weight.

    `y` may be a plain response vector, or a `pd.DataFrame` / 2-d array
    whose columns `response_id`, `offset_id` and `weight_id` hold the
    response, the offset and the observation weights.

    Returns
    -------
    tuple
        (X, y, response, offset, weight); `weight` defaults to 1s,
        `offset` to None.
    """
    def _column(col_id):
        if isinstance(y, pd.DataFrame):
            return np.asarray(y.loc[:,col_id])
        return np.asarray(y)[:,col_id]

    offset = _column(offset_id) if offset_id is not None else None
    weight = _column(weight_id) if weight_id is not None else None

    if response_id is not None:
        response = _column(response_id)
    elif offset_id is None and weight_id is None:
        response = np.asarray(y)
    elif isinstance(y, pd.DataFrame):
        drop = [c for c in [offset_id, weight_id] if c is not None]
        response = np.asarray(y.drop(columns=drop))
    else:
        keep = np.ones(y.shape[1], bool)
        for c in [offset_id, weight_id]:
            if c is not None:
                keep[c] = False
        response = np.asarray(y)[:,keep]

    if check:
        X, _ = check_X_y(X, response,
                         accept_sparse=['csc'],
                         multi_output=True,
                         y_numeric=False,
                         estimator=estimator)

    if weight is None:
        weight = np.ones(X.shape[0])
    weight = np.asarray(weight, float)
    if offset is not None:
        offset = np.asarray(offset, float)

    return X, y, np.squeeze(response), offset, weight


def _jerr_elnetfit(n, maxit, k=None):
    """
    Translate an error code from the coordinate descent solver.
    """
    if n == 0:
        fatal = False
        msg = ''
    elif n > 0:
        fatal = True
        msg = "Unknown error"
    else:
        fatal = False
        where = f" for {k}-th lambda value" if k is not None else ""
        msg = f"Convergence{where} not reached after maxit={maxit} iterations"
    return {'n':n,
            'fatal':fatal,
            'msg':f"Error code {n}: " + msg}


def _parent_dataclass_from_child(cls,
                                 parent_dict,
                                 **modified_args):
    _fields = [f.name for f in fields(cls)]
    _cls_args = {k:parent_dict[k] for k in parent_dict.keys() if k in _fields}
    _cls_args.update(**modified_args)
    return cls(**_cls_args)
