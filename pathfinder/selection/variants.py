from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np

from pathfinder.cost.edge_cost import SCALE_FLOOR, EdgeCostModel, channel_scale
from pathfinder.cost.integrate import EDGE_SUBDIVISIONS
from pathfinder.dp.engine import select_from_model
from pathfinder.ensemble.resample import resample_to_grid
from pathfinder.types import CandidateGrid, CostMode, RealizationEnsemble, SelectionResult, SignalChannel

logger = logging.getLogger(__name__)

NORMALIZE_MODES = ("std", "variance")
ZERO_VARIANCE_POLICIES = ("zero", "raise")


def _as_grid(grid: CandidateGrid | np.ndarray | Sequence[float]) -> CandidateGrid:
    if isinstance(grid, CandidateGrid):
        return grid
    return CandidateGrid(positions=np.asarray(grid, dtype=float))


def _as_ensemble(ensemble: RealizationEnsemble | np.ndarray) -> RealizationEnsemble:
    if isinstance(ensemble, RealizationEnsemble):
        return ensemble
    return RealizationEnsemble(values=np.asarray(ensemble, dtype=float))


def _baseline_on_grid(baseline: np.ndarray | None, grid: CandidateGrid) -> np.ndarray:
    if baseline is None:
        return np.zeros(grid.size, dtype=float)
    base = np.asarray(baseline, dtype=float)
    if base.shape != (grid.size,):
        raise ValueError("baseline must have shape (N,) matching the grid")
    if not np.all(np.isfinite(base)):
        raise ValueError("baseline must be finite")
    return base


def shifted_realizations(
    grid: CandidateGrid,
    ensemble: RealizationEnsemble,
    baseline: np.ndarray | None = None,
    *,
    resample_degree: int = 1,
) -> np.ndarray:
    values = resample_to_grid(ensemble, grid, degree=resample_degree)
    return values - _baseline_on_grid(baseline, grid)[None, :]


def _select(
    grid: CandidateGrid,
    channels: list[np.ndarray],
    num_subsamples: int,
    *,
    cost_mode: CostMode | str,
    degree: int,
    subdivisions: int,
    rel_tol: float | None,
    n_jobs: int | None,
    meta: dict[str, Any],
) -> SelectionResult:
    model = EdgeCostModel(
        grid.positions,
        channels,
        mode=cost_mode,
        degree=degree,
        subdivisions=subdivisions,
        rel_tol=rel_tol,
    )
    return select_from_model(model, num_subsamples, n_jobs=n_jobs, meta=meta)


def find_path_f2(
    grid: CandidateGrid | np.ndarray,
    baseline: np.ndarray | None,
    ensemble: RealizationEnsemble | np.ndarray,
    num_subsamples: int,
    *,
    cost_mode: CostMode | str = CostMode.FAST,
    degree: int = 1,
    resample_degree: int = 1,
    subdivisions: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    n_jobs: int | None = None,
) -> SelectionResult:
    g = _as_grid(grid)
    ens = _as_ensemble(ensemble)
    shifted = shifted_realizations(g, ens, baseline, resample_degree=resample_degree)
    return _select(
        g,
        [shifted],
        num_subsamples,
        cost_mode=cost_mode,
        degree=degree,
        subdivisions=subdivisions,
        rel_tol=rel_tol,
        n_jobs=n_jobs,
        meta={"variant": "f2", "realizations": int(shifted.shape[0])},
    )


def find_path_f1(
    grid: CandidateGrid | np.ndarray,
    ensemble: RealizationEnsemble | np.ndarray,
    num_subsamples: int,
    **kwargs: Any,
) -> SelectionResult:
    result = find_path_f2(grid, None, ensemble, num_subsamples, **kwargs)
    result.meta["variant"] = "f1"
    return result


def normalized_difference(
    grid: CandidateGrid,
    ensemble_a: RealizationEnsemble,
    ensemble_b: RealizationEnsemble,
    *,
    normalize: str = "std",
    zero_variance: str = "zero",
    resample_degree: int = 1,
    return_details: bool = False,
) -> np.ndarray | tuple[np.ndarray, dict[str, Any]]:
    if normalize not in NORMALIZE_MODES:
        raise ValueError(f"unsupported normalize mode: {normalize!r}")
    if zero_variance not in ZERO_VARIANCE_POLICIES:
        raise ValueError(f"unsupported zero_variance policy: {zero_variance!r}")
    if ensemble_a.n_realizations != ensemble_b.n_realizations:
        raise ValueError("ensemble_a and ensemble_b must have the same number of realizations")
    if ensemble_a.n_realizations < 2:
        raise ValueError("at least two realizations are required to estimate the variance")

    a = resample_to_grid(ensemble_a, grid, degree=resample_degree)
    b = resample_to_grid(ensemble_b, grid, degree=resample_degree)
    diff = a - b
    variance = np.var(diff, axis=0, ddof=1)
    scale = np.sqrt(variance) if normalize == "std" else variance

    degenerate = ~(scale > SCALE_FLOOR)
    n_degenerate = int(np.sum(degenerate))
    if n_degenerate and zero_variance == "raise":
        bad = [int(i) for i in np.flatnonzero(degenerate)]
        raise ValueError(f"zero variance of the difference at grid indices {bad}")

    out = np.zeros_like(diff)
    keep = ~degenerate
    out[:, keep] = diff[:, keep] / scale[keep][None, :]
    if n_degenerate:
        logger.warning(
            "difference variance vanishes at %d of %d positions; those positions are set to 0",
            n_degenerate,
            grid.size,
        )

    if return_details:
        return out, {
            "normalize": normalize,
            "zero_variance_positions": [int(i) for i in np.flatnonzero(degenerate)],
            "variance": variance.tolist(),
        }
    return out


def find_path_f3(
    grid: CandidateGrid | np.ndarray,
    ensemble_a: RealizationEnsemble | np.ndarray,
    ensemble_b: RealizationEnsemble | np.ndarray,
    num_subsamples: int,
    *,
    normalize: str = "std",
    zero_variance: str = "zero",
    cost_mode: CostMode | str = CostMode.FAST,
    degree: int = 1,
    resample_degree: int = 1,
    subdivisions: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    n_jobs: int | None = None,
) -> SelectionResult:
    g = _as_grid(grid)
    normalized, details = normalized_difference(
        g,
        _as_ensemble(ensemble_a),
        _as_ensemble(ensemble_b),
        normalize=normalize,
        zero_variance=zero_variance,
        resample_degree=resample_degree,
        return_details=True,
    )
    result = find_path_f2(
        g,
        None,
        RealizationEnsemble(values=normalized),
        num_subsamples,
        cost_mode=cost_mode,
        degree=degree,
        subdivisions=subdivisions,
        rel_tol=rel_tol,
        n_jobs=n_jobs,
    )
    result.meta["variant"] = "f3"
    result.meta["normalize"] = details["normalize"]
    result.meta["zero_variance_positions"] = details["zero_variance_positions"]
    return result


def prepare_channels(
    grid: CandidateGrid,
    channels: Sequence[SignalChannel],
    *,
    weights: Sequence[float] | None = None,
    degree: int = 1,
    resample_degree: int = 1,
    return_details: bool = False,
) -> list[np.ndarray] | tuple[list[np.ndarray], dict[str, Any]]:
    if not channels:
        raise ValueError("at least one channel is required")
    if weights is not None and len(weights) != len(channels):
        raise ValueError(f"weights length {len(weights)} does not match {len(channels)} channels")

    out: list[np.ndarray] = []
    scales: list[float] = []
    applied: list[float] = []
    for c, channel in enumerate(channels):
        shifted = shifted_realizations(grid, channel.ensemble, channel.baseline, resample_degree=resample_degree)
        scale = channel_scale(grid.positions, shifted, degree=degree)
        if not scale > SCALE_FLOOR:
            logger.warning("channel %s has vanishing scale %.3g; left unnormalized", channel.name or c, scale)
            scale = 1.0
        weight = float(channel.weight) * (1.0 if weights is None else float(weights[c]))
        out.append(weight * shifted / np.sqrt(scale))
        scales.append(float(scale))
        applied.append(weight)

    if return_details:
        return out, {"scales": scales, "weights": applied}
    return out


def find_path_multi(
    grid: CandidateGrid | np.ndarray,
    channels: Sequence[SignalChannel],
    num_subsamples: int,
    *,
    weights: Sequence[float] | None = None,
    cost_mode: CostMode | str = CostMode.FAST,
    degree: int = 1,
    resample_degree: int = 1,
    subdivisions: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    n_jobs: int | None = None,
) -> SelectionResult:
    g = _as_grid(grid)
    prepared, details = prepare_channels(
        g,
        channels,
        weights=weights,
        degree=degree,
        resample_degree=resample_degree,
        return_details=True,
    )
    return _select(
        g,
        prepared,
        num_subsamples,
        cost_mode=cost_mode,
        degree=degree,
        subdivisions=subdivisions,
        rel_tol=rel_tol,
        n_jobs=n_jobs,
        meta={
            "variant": "multi",
            "channels": [ch.name or f"channel_{c}" for c, ch in enumerate(channels)],
            "channel_scales": details["scales"],
            "channel_weights": details["weights"],
        },
    )


def select_subset(
    grid: CandidateGrid | np.ndarray,
    ensemble: RealizationEnsemble | np.ndarray | None,
    num_subsamples: int,
    *,
    baseline: np.ndarray | None = None,
    cost_mode: CostMode | str = CostMode.FAST,
    channels: Sequence[SignalChannel] | None = None,
    weights: Sequence[float] | None = None,
    degree: int = 1,
    resample_degree: int = 1,
    subdivisions: int = EDGE_SUBDIVISIONS,
    rel_tol: float | None = None,
    n_jobs: int | None = None,
) -> SelectionResult:
    """Pick ``num_subsamples`` grid positions minimizing expected squared reconstruction error.

    With ``channels`` the multi-signal path is used and ``ensemble``/``baseline``
    must be omitted; otherwise ``ensemble`` is differenced against ``baseline``
    (zero when omitted).
    """
    common: dict[str, Any] = {
        "cost_mode": cost_mode,
        "degree": degree,
        "resample_degree": resample_degree,
        "subdivisions": subdivisions,
        "rel_tol": rel_tol,
        "n_jobs": n_jobs,
    }
    if channels is not None:
        if ensemble is not None or baseline is not None:
            raise ValueError("pass either channels or ensemble/baseline, not both")
        return find_path_multi(grid, channels, num_subsamples, weights=weights, **common)
    if ensemble is None:
        raise ValueError("ensemble is required when channels are not given")
    if weights is not None:
        raise ValueError("weights are only supported with channels")
    if baseline is None:
        return find_path_f1(grid, ensemble, num_subsamples, **common)
    return find_path_f2(grid, baseline, ensemble, num_subsamples, **common)
