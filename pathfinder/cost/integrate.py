from __future__ import annotations

from typing import Callable

import numpy as np
from scipy import integrate

from pathfinder.types import IntegralResult

DEFAULT_REL_TOL = float(np.finfo(float).eps ** 0.1)
EDGE_SUBDIVISIONS = 500
L2_SUBDIVISIONS = 2000


def _interior_points(points: np.ndarray | None, start: float, stop: float) -> list[float] | None:
    if points is None:
        return None
    pts = np.unique(np.asarray(points, dtype=float))
    pts = pts[(pts > start) & (pts < stop)]
    if pts.size == 0:
        return None
    return [float(v) for v in pts]


def integrate_vector(
    func: Callable[[float], np.ndarray],
    start: float,
    stop: float,
    *,
    limit: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    abs_tol: float | None = None,
    points: np.ndarray | None = None,
) -> tuple[np.ndarray, IntegralResult]:
    a = float(start)
    b = float(stop)
    if a == b:
        zero = np.zeros(np.shape(func(a)), dtype=float)
        return zero, IntegralResult(value=0.0, abserr=0.0, converged=True, neval=0)
    if b < a:
        raise ValueError(f"integration bounds must satisfy start <= stop: {a} > {b}")
    if int(limit) < 1:
        raise ValueError("limit must be >= 1")

    rtol = DEFAULT_REL_TOL if rel_tol is None else float(rel_tol)
    atol = rtol if abs_tol is None else float(abs_tol)
    res, err, info = integrate.quad_vec(
        func,
        a,
        b,
        epsabs=atol,
        epsrel=rtol,
        limit=int(limit),
        points=_interior_points(points, a, b),
        full_output=True,
    )
    values = np.atleast_1d(np.asarray(res, dtype=float))
    return values, IntegralResult(
        value=float(np.sum(values)),
        abserr=float(err),
        converged=bool(info.success),
        neval=int(info.neval),
    )


def integrate_squared(
    func: Callable[[float], np.ndarray],
    start: float,
    stop: float,
    *,
    limit: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    abs_tol: float | None = None,
    points: np.ndarray | None = None,
) -> IntegralResult:
    def squared(x: float) -> np.ndarray:
        diff = np.atleast_1d(np.asarray(func(x), dtype=float))
        return diff * diff

    _, result = integrate_vector(
        squared,
        start,
        stop,
        limit=limit,
        rel_tol=rel_tol,
        abs_tol=abs_tol,
        points=points,
    )
    return result
