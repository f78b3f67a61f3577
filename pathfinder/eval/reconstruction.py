from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from pathfinder.cost.edge_cost import flat_extended_support
from pathfinder.spline.deboor import evaluate_spline


def uniform_indices(n_candidates: int, num_subsamples: int) -> np.ndarray:
    n = int(n_candidates)
    k = int(num_subsamples)
    if not 1 <= k <= n:
        raise ValueError(f"num_subsamples must be in [1, {n}]")
    if k == 1:
        return np.asarray([(n - 1) // 2], dtype=int)
    return np.round(np.linspace(0.0, float(n - 1), k)).astype(int)


def random_indices(n_candidates: int, num_subsamples: int, rng: np.random.Generator) -> np.ndarray:
    n = int(n_candidates)
    k = int(num_subsamples)
    if not 1 <= k <= n:
        raise ValueError(f"num_subsamples must be in [1, {n}]")
    return np.sort(rng.choice(n, size=k, replace=False)).astype(int)


def split_holdout(
    values: np.ndarray,
    holdout_fraction: float,
    *,
    seed: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2:
        raise ValueError("values must be 2-D")
    frac = float(holdout_fraction)
    if not 0.0 < frac < 1.0:
        raise ValueError("holdout_fraction must be in (0, 1)")
    m = int(arr.shape[0])
    n_hold = int(round(m * frac))
    if n_hold < 1 or n_hold >= m:
        raise ValueError(f"holdout_fraction {frac} leaves no train or holdout rows for {m} realizations")
    order = np.random.default_rng(seed).permutation(m)
    return arr[np.sort(order[n_hold:])], arr[np.sort(order[:n_hold])]


def reconstruct(
    grid: np.ndarray,
    values: np.ndarray,
    indices: Sequence[int],
    eval_positions: np.ndarray,
    *,
    degree: int = 1,
) -> np.ndarray:
    x = np.asarray(grid, dtype=float)
    rows = np.asarray(values, dtype=float)
    if rows.ndim == 1:
        rows = rows[None, :]
    knots, vals = flat_extended_support(x, rows, indices)
    return evaluate_spline(np.asarray(eval_positions, dtype=float), knots, vals, degree)


def reconstruction_rmse(
    grid: np.ndarray,
    values: np.ndarray,
    indices: Sequence[int],
    *,
    eval_points: int = 200,
    degree: int = 1,
) -> float:
    x = np.asarray(grid, dtype=float)
    rows = np.asarray(values, dtype=float)
    if rows.ndim == 1:
        rows = rows[None, :]
    if int(eval_points) < 2:
        raise ValueError("eval_points must be >= 2")
    xs = np.linspace(float(x[0]), float(x[-1]), int(eval_points))
    full = evaluate_spline(xs, x, rows, degree)
    approx = reconstruct(x, rows, indices, xs, degree=degree)
    return float(np.sqrt(np.mean((full - approx) ** 2)))


def _improvement(selected: float, reference: float) -> float:
    if reference <= 0.0:
        return 0.0
    return float(1.0 - selected / reference)


def compare_with_baselines(
    grid: np.ndarray,
    holdout: np.ndarray,
    selected_indices: Sequence[int],
    *,
    random_trials: int = 20,
    eval_points: int = 200,
    seed: int = 0,
    degree: int = 1,
) -> dict[str, Any]:
    x = np.asarray(grid, dtype=float)
    sel = np.asarray(selected_indices, dtype=int)
    k = int(sel.shape[0])
    n = int(x.shape[0])

    rmse_selected = reconstruction_rmse(x, holdout, sel, eval_points=eval_points, degree=degree)
    uni = uniform_indices(n, k)
    rmse_uniform = reconstruction_rmse(x, holdout, uni, eval_points=eval_points, degree=degree)

    rng = np.random.default_rng(seed)
    random_rmse: list[float] = []
    for _ in range(max(0, int(random_trials))):
        idx = random_indices(n, k, rng)
        random_rmse.append(reconstruction_rmse(x, holdout, idx, eval_points=eval_points, degree=degree))
    rmse_random = float(np.mean(random_rmse)) if random_rmse else float("nan")

    return {
        "holdout_realizations": int(np.atleast_2d(holdout).shape[0]),
        "rmse_selected": rmse_selected,
        "rmse_uniform": rmse_uniform,
        "uniform_indices": [int(i) for i in uni],
        "rmse_random_mean": rmse_random,
        "random_trials": len(random_rmse),
        "improvement_vs_uniform": _improvement(rmse_selected, rmse_uniform),
        "improvement_vs_random": (
            _improvement(rmse_selected, rmse_random) if random_rmse else float("nan")
        ),
    }
