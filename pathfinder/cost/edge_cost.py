from __future__ import annotations

import logging
import math
import threading
from typing import Sequence

import numpy as np

from pathfinder.cost.integrate import EDGE_SUBDIVISIONS, L2_SUBDIVISIONS, integrate_squared
from pathfinder.spline.deboor import check_degree, evaluate_spline
from pathfinder.types import CostMode, IntegralResult

logger = logging.getLogger(__name__)

SCALE_FLOOR = 1.0e-12


def _as_rows(values: np.ndarray, n: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 1:
        arr = arr[None, :]
    if arr.ndim != 2 or arr.shape[1] != n:
        raise ValueError(f"{name} must have shape (M, N) matching the grid")
    return arr


def flat_extended_support(
    positions: np.ndarray,
    rows: np.ndarray,
    index: Sequence[int],
) -> tuple[np.ndarray, np.ndarray]:
    idx = np.asarray(sorted({int(i) for i in index}), dtype=int)
    if idx.size == 0:
        raise ValueError("support index must not be empty")
    knots = positions[idx]
    vals = rows[:, idx]
    if knots[0] > positions[0]:
        knots = np.concatenate([[positions[0]], knots])
        vals = np.concatenate([vals[:, [0]], vals], axis=1)
    if knots[-1] < positions[-1]:
        knots = np.concatenate([knots, [positions[-1]]])
        vals = np.concatenate([vals, vals[:, [-1]]], axis=1)
    return knots, vals


def _squared_error(
    positions: np.ndarray,
    rows: np.ndarray,
    index: Sequence[int],
    start: float,
    stop: float,
    *,
    degree: int,
    limit: int,
    rel_tol: float | None,
) -> IntegralResult:
    knots, vals = flat_extended_support(positions, rows, index)

    def diff(x: float) -> np.ndarray:
        full = evaluate_spline(x, positions, rows, degree)
        reduced = evaluate_spline(x, knots, vals, degree)
        return np.ravel(full - reduced)

    return integrate_squared(diff, start, stop, limit=limit, rel_tol=rel_tol, points=positions)


def l2_error(
    grid: np.ndarray,
    y1: np.ndarray,
    y2: np.ndarray,
    start: float,
    stop: float,
    index: Sequence[int],
    *,
    subdivisions: int = L2_SUBDIVISIONS,
    degree: int = 1,
    rel_tol: float | None = None,
    return_details: bool = False,
) -> float | tuple[float, IntegralResult]:
    """Squared L2 distance between ``y1 - y2`` sampled on the whole grid and on ``grid[index]``.

    Both reconstructions are flat beyond their first and last sampled positions.
    ``y2`` may be 1-D (one curve) or 2-D (one row per curve, errors summed).
    ``index`` holds 0-based grid positions.
    """
    x = np.asarray(grid, dtype=float)
    n = int(x.shape[0])
    a = _as_rows(y1, n, "y1")
    b = _as_rows(y2, n, "y2")
    result = _squared_error(
        x,
        a - b,
        index,
        float(start),
        float(stop),
        degree=degree,
        limit=subdivisions,
        rel_tol=rel_tol,
    )
    if return_details:
        return result.value, result
    return result.value


def channel_scale(grid: np.ndarray, differences: np.ndarray, *, degree: int = 1) -> float:
    x = np.asarray(grid, dtype=float)
    rows = _as_rows(differences, x.shape[0], "differences")
    if x.shape[0] < 2:
        return 1.0
    total = l2_error(x, rows, np.zeros(x.shape[0]), x[0], x[-1], [0, x.shape[0] - 1], degree=degree)
    return float(total) / float(rows.shape[0])


class EdgeCostModel:
    """Expected squared reconstruction error of one DP edge.

    Table nodes ``1..N`` are grid positions, ``0`` is the virtual start and
    ``N + 1`` the virtual end. ``channels`` are baseline-shifted ensembles
    sampled on the grid; in accurate mode every realization is integrated on
    its own, in fast mode each channel is summed pointwise first.
    """

    def __init__(
        self,
        grid: np.ndarray,
        channels: Sequence[np.ndarray],
        *,
        mode: CostMode | str = CostMode.FAST,
        degree: int = 1,
        subdivisions: int = EDGE_SUBDIVISIONS,
        rel_tol: float | None = None,
    ) -> None:
        self.positions = np.asarray(grid, dtype=float)
        if self.positions.ndim != 1 or self.positions.size == 0:
            raise ValueError("grid must be a non-empty 1-D array")
        if not channels:
            raise ValueError("at least one channel is required")
        self.mode = CostMode.parse(mode)
        self.degree = check_degree(degree)
        self.subdivisions = int(subdivisions)
        self.rel_tol = rel_tol

        n = self.n_candidates
        blocks: list[np.ndarray] = []
        for c, values in enumerate(channels):
            rows = _as_rows(values, n, f"channel {c}")
            if self.mode is CostMode.FAST:
                rows = np.sum(rows, axis=0, keepdims=True)
            blocks.append(rows)
        self.rows = np.vstack(blocks)
        self.rows.setflags(write=False)

        self._cache: dict[tuple[int, ...], tuple[float, bool]] = {}
        self._lock = threading.Lock()
        self.edges_evaluated = 0
        self.non_converged = 0

    @property
    def n_candidates(self) -> int:
        return int(self.positions.shape[0])

    @property
    def path_dependent(self) -> bool:
        return self.degree > 1

    def _bounds(self, i: int, j: int) -> tuple[float, float]:
        x = self.positions
        start = x[0] if i == 0 else x[i - 1]
        stop = x[-1] if j == self.n_candidates + 1 else x[j - 1]
        return float(start), float(stop)

    def _support(self, i: int, j: int, support: Sequence[int]) -> list[int]:
        n = self.n_candidates
        nodes: list[int] = []
        if self.path_dependent:
            nodes.extend(int(s) for s in support if 1 <= int(s) <= n)
        if i != 0:
            nodes.append(i)
        if j != n + 1:
            nodes.append(j)
        return [s - 1 for s in nodes]

    def cost(self, i: int, j: int, support: Sequence[int] = ()) -> tuple[float, bool]:
        n = self.n_candidates
        if not 0 <= i < j <= n + 1:
            raise ValueError(f"invalid edge ({i}, {j}) for {n} candidates")
        if i == 0 and j == n + 1:
            return math.inf, True

        key = (i, j, *tuple(int(s) for s in support)) if self.path_dependent else (i, j)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        start, stop = self._bounds(i, j)
        if start == stop:
            with self._lock:
                return self._cache.setdefault(key, (0.0, True))

        result = _squared_error(
            self.positions,
            self.rows,
            self._support(i, j, support),
            start,
            stop,
            degree=self.degree,
            limit=self.subdivisions,
            rel_tol=self.rel_tol,
        )
        out = (float(result.value), bool(result.converged))
        with self._lock:
            stored = self._cache.setdefault(key, out)
            if stored is not out:
                return stored
            self.edges_evaluated += 1
            if not result.converged:
                self.non_converged += 1
        if not result.converged:
            logger.debug("integration did not converge on edge (%d, %d): abserr=%.3g", i, j, result.abserr)
        return out

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
