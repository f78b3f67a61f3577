from __future__ import annotations

import numpy as np

from pathfinder.errors import SplineConfigError


def check_degree(degree: int) -> int:
    try:
        p = int(degree)
    except (TypeError, ValueError) as exc:
        raise SplineConfigError(f"invalid spline degree: {degree!r}") from exc
    if p != degree or p < 0:
        raise SplineConfigError(f"spline degree must be a non-negative integer: {degree!r}")
    return p


def _triangular(x: np.ndarray, t: np.ndarray, b: np.ndarray, start: np.ndarray, p: int) -> np.ndarray:
    # x: (Q,), t: (L,), b: (M, L), start: (Q,) window start -> (M, Q)
    idx = start[:, None] + np.arange(p + 1)[None, :]
    tw = t[idx]
    d = np.array(b[:, idx], dtype=float, copy=True)
    for r in range(p):
        for j in range(p, r, -1):
            alpha = (x - tw[:, r]) / (tw[:, j] - tw[:, r])
            d[:, :, j] = (1.0 - alpha) * d[:, :, r] + alpha * d[:, :, j]
    return d[:, :, p]


def _left_counts(t: np.ndarray, x: np.ndarray) -> np.ndarray:
    return np.searchsorted(t, x, side="left").astype(int)


def evaluate_spline(
    x: np.ndarray | float,
    knots: np.ndarray,
    values: np.ndarray,
    degree: int = 1,
) -> np.ndarray:
    """Evaluate the degree-``degree`` piecewise polynomial through ``(knots, values)``.

    Each query combines the ``degree + 1`` consecutive knots ending at the first
    knot that is not smaller than the query. Queries with fewer than ``degree``
    knots to their left are evaluated on the reflected problem (negated and
    reversed knots, reversed values). Queries outside the knot range take the
    boundary value, and a knot sequence collapsed to one position evaluates to 0.

    ``values`` may be ``(L,)`` or ``(M, L)``; the output is shaped like ``x``
    with a leading ``M`` axis in the 2-D case.
    """
    p = check_degree(degree)

    t = np.asarray(knots, dtype=float)
    if t.ndim != 1 or t.size == 0:
        raise ValueError("knots must be a non-empty 1-D array")
    vals = np.asarray(values, dtype=float)
    squeeze = vals.ndim == 1
    b = vals[None, :] if squeeze else vals
    if b.ndim != 2 or b.shape[1] != t.shape[0]:
        raise ValueError("values must have shape (L,) or (M, L) matching knots")

    x_arr = np.asarray(x, dtype=float)
    q = x_arr.reshape(-1)
    out = np.zeros((b.shape[0], q.shape[0]), dtype=float)

    if float(t[-1]) == float(t[0]):
        return _shape_output(out, x_arr.shape, squeeze)
    if t.size > 1 and not np.all(np.diff(t) > 0.0):
        raise ValueError("knots must be strictly increasing")

    L = int(t.shape[0])
    p_eff = min(p, L - 1)

    below = q <= t[0]
    above = q >= t[-1]
    out[:, below] = b[:, [0]]
    out[:, above & ~below] = b[:, [-1]]
    inner = ~(below | above)
    if not np.any(inner):
        return _shape_output(out, x_arr.shape, squeeze)

    xi = q[inner]
    k = _left_counts(t, xi)
    direct = k >= p_eff
    result = np.empty((b.shape[0], xi.shape[0]), dtype=float)

    if np.any(direct):
        result[:, direct] = _triangular(xi[direct], t, b, k[direct] - p_eff, p_eff)

    if np.any(~direct):
        t_ref = -t[::-1]
        b_ref = b[:, ::-1]
        x_ref = -xi[~direct]
        k_ref = _left_counts(t_ref, x_ref)
        start_ref = k_ref - p_eff
        fits = start_ref >= 0
        part = np.empty((b.shape[0], x_ref.shape[0]), dtype=float)
        if np.any(fits):
            part[:, fits] = _triangular(x_ref[fits], t_ref, b_ref, start_ref[fits], p_eff)
        if np.any(~fits):
            part[:, ~fits] = _triangular(
                xi[~direct][~fits],
                t,
                b,
                np.zeros(int(np.sum(~fits)), dtype=int),
                p_eff,
            )
        result[:, ~direct] = part

    out[:, inner] = result
    return _shape_output(out, x_arr.shape, squeeze)


def _shape_output(out: np.ndarray, shape: tuple[int, ...], squeeze: bool) -> np.ndarray:
    if squeeze:
        return out[0].reshape(shape)
    return out.reshape((out.shape[0],) + tuple(shape))
