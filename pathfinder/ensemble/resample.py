from __future__ import annotations

import numpy as np

from pathfinder.spline.deboor import evaluate_spline
from pathfinder.types import CandidateGrid, RealizationEnsemble


def resample_to_grid(
    ensemble: RealizationEnsemble,
    grid: CandidateGrid,
    *,
    degree: int = 1,
) -> np.ndarray:
    values = np.asarray(ensemble.values, dtype=float)
    if ensemble.positions is None:
        if values.shape[1] != grid.size:
            raise ValueError("ensemble without positions must be sampled on the candidate grid")
        return np.array(values, copy=True)
    src = np.asarray(ensemble.positions, dtype=float)
    if src.shape == grid.positions.shape and np.array_equal(src, grid.positions):
        return np.array(values, copy=True)
    out = evaluate_spline(grid.positions, src, values, degree)
    return np.asarray(out, dtype=float).reshape(values.shape[0], grid.size)


def resample_uniform(
    positions: np.ndarray,
    values: np.ndarray,
    *,
    n_knots: int = 100,
    degree: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    pos = np.asarray(positions, dtype=float)
    vals = np.asarray(values, dtype=float)
    if int(n_knots) < 1:
        raise ValueError("n_knots must be >= 1")
    if pos.ndim != 1 or pos.size < 2:
        raise ValueError("positions must be 1-D with at least two entries")
    new_pos = np.linspace(float(pos[0]), float(pos[-1]), int(n_knots) + 1)
    return new_pos, evaluate_spline(new_pos, pos, vals, degree)
