"""
Coordinate descent for a single value of `lambda`.

Solves

    1/2 sum_i v_i (y_i - a0 - x_i'b)^2 + lambda sum_j vp_j (alpha |b_j| + (1-alpha)/2 b_j^2)

subject to `cl[0,j] <= b_j <= cl[1,j]`, where `x_i` is a row of the
effective (centered and scaled) matrix of a `Design`. Passes over all
variables alternate with passes over the active set until a full pass
changes nothing by more than `thr`.
"""
import numpy as np
import scipy.sparse


class _Columns(object):
    """
    Column access to the effective matrix of a `Design`.
    """

    def __init__(self, design):
        X = design.X
        self.sparse = scipy.sparse.issparse(X)
        self.X = X
        self.xm, self.xs = design.centers_, design.scaling_
        if self.sparse:
            X = scipy.sparse.csc_array(X)
            self._slices = [(X.indices[X.indptr[j]:X.indptr[j+1]],
                             X.data[X.indptr[j]:X.indptr[j+1]])
                            for j in range(X.shape[1])]

    def dot(self, j, v, v_sum):
        if self.sparse:
            idx, data = self._slices[j]
            return ((data * v[idx]).sum() - self.xm[j] * v_sum) / self.xs[j]
        return self.X[:,j] @ v

    def subtract(self, j, delta, r):
        # r -= delta * x_j
        if self.sparse:
            idx, data = self._slices[j]
            r[idx] -= delta * data / self.xs[j]
            r += delta * self.xm[j] / self.xs[j]
        else:
            r -= delta * self.X[:,j]

    def sqnorm(self, j, w):
        if self.sparse:
            idx, data = self._slices[j]
            xm, xs = self.xm[j], self.xs[j]
            total = (w * xm**2).sum()
            total += (w[idx] * ((data - xm)**2 - xm**2)).sum()
            return total / xs**2
        return (w * self.X[:,j]**2).sum()


def elnet_point(design,
                y,
                v,
                almc,
                alpha,
                vp,
                cl,
                ju,
                intr,
                a,
                aint,
                thr=1e-7,
                maxit=100000):
    """
    Coordinate descent for one value of `lambda`, warm started at `(aint, a)`.

    Parameters
    ----------
    design: Design
        Dense or sparse design.
    y: np.ndarray
        Response (working response when called from IRLS).
    v: np.ndarray
        Observation weights.
    almc: float
        Value of `lambda`.
    alpha: float
        Elastic net mixing parameter.
    vp: np.ndarray
        Penalty factors.
    cl: np.ndarray
        Array of shape `(2, nvars)` of lower and upper limits.
    ju: np.ndarray
        Boolean array, False for variables held at zero.
    intr: bool
        Fit an intercept?
    a: np.ndarray
        Warm start coefficients.
    aint: float
        Warm start intercept.
    thr: float
        Convergence threshold on `max_j xv_j * delta_j^2`.
    maxit: int
        Maximum number of passes over the variables.

    Returns
    -------
    dict
        Keys `a`, `aint`, `nlp` (number of passes), `jerr` (0 on
        success, `-1` if `maxit` was reached).
    """
    cols = _Columns(design)
    nvars = design.shape[1] - 1

    v = np.asarray(v, float)
    v_sum = v.sum()
    a = np.array(a, float).reshape(-1)
    aint = float(aint) if intr else 0.

    r = np.asarray(y, float) - (design @ np.hstack([aint, a]))

    xv = np.array([cols.sqnorm(j, v) for j in range(nvars)])
    ju = np.asarray(ju, bool) & (xv > 0)
    a[~ju] = 0

    l1 = almc * alpha * vp
    l2 = almc * (1 - alpha) * vp

    active = (a != 0) & ju
    nlp, jerr = 0, 0

    def _pass(variables):
        nonlocal aint
        dlx = 0.
        vr = v * r
        vr_sum = vr.sum()
        for j in variables:
            gj = cols.dot(j, vr, vr_sum)
            u = gj + xv[j] * a[j]
            anew = np.sign(u) * max(abs(u) - l1[j], 0) / (xv[j] + l2[j])
            anew = min(max(anew, cl[0,j]), cl[1,j])
            delta = anew - a[j]
            if delta != 0:
                a[j] = anew
                cols.subtract(j, delta, r)
                vr = v * r
                vr_sum = vr.sum()
                active[j] = True
                dlx = max(dlx, xv[j] * delta**2)
        if intr:
            delta = vr_sum / v_sum
            if delta != 0:
                aint += delta
                r[:] -= delta
                dlx = max(dlx, v_sum * delta**2)
        return dlx

    all_vars = np.flatnonzero(ju)
    while True:
        nlp += 1
        if _pass(all_vars) < thr:
            break
        if nlp >= maxit:
            jerr = -1
            break
        while True:
            nlp += 1
            if _pass(np.flatnonzero(active)) < thr:
                break
            if nlp >= maxit:
                jerr = -1
                break
        if jerr:
            break

    return {'a':a,
            'aint':aint,
            'nlp':nlp,
            'jerr':jerr}
