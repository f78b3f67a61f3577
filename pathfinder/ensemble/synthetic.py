from __future__ import annotations

from typing import Any

import numpy as np

from pathfinder.ensemble.resample import resample_uniform
from pathfinder.types import CandidateGrid, EnsembleBundle, RealizationEnsemble

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def seasonal_curve(
    positions: np.ndarray,
    *,
    amplitude: float = 20.0,
    peak: float = 7.0,
    width: float = 1.5,
    offset: float = 0.0,
) -> np.ndarray:
    x = np.asarray(positions, dtype=float)
    if width <= 0.0:
        raise ValueError("width must be > 0")
    return offset + amplitude * np.exp(-(((x - peak) / width) ** 2))


def make_seasonal_ensemble(
    positions: np.ndarray,
    n_realizations: int,
    *,
    amplitude: float = 20.0,
    peak: float = 7.0,
    width: float = 1.5,
    offset: float = 0.0,
    noise: float = 0.5,
    amplitude_jitter: float = 0.05,
    seed: int = 0,
    name: str = "",
    sample_positions: np.ndarray | None = None,
) -> RealizationEnsemble:
    if int(n_realizations) < 1:
        raise ValueError("n_realizations must be >= 1")
    rng = np.random.default_rng(seed)
    x = np.asarray(positions if sample_positions is None else sample_positions, dtype=float)
    base = seasonal_curve(x, amplitude=amplitude, peak=peak, width=width, offset=offset)
    scale = 1.0 + amplitude_jitter * rng.normal(size=(int(n_realizations), 1))
    values = (base[None, :] - offset) * scale + offset + noise * rng.normal(size=(int(n_realizations), x.shape[0]))
    return RealizationEnsemble(
        values=values,
        positions=None if sample_positions is None else x,
        name=name,
    )


def on_uniform_knots(ensemble: RealizationEnsemble, positions: np.ndarray, n_knots: int) -> RealizationEnsemble:
    src = positions if ensemble.positions is None else ensemble.positions
    knots, values = resample_uniform(src, ensemble.values, n_knots=n_knots)
    return RealizationEnsemble(values=values, positions=knots, name=ensemble.name)


def make_synthetic_bundle(
    *,
    n_positions: int = 12,
    n_realizations: int = 50,
    noise: float = 0.5,
    seed: int = 0,
    resample_knots: int | None = None,
) -> EnsembleBundle:
    n = int(n_positions)
    if n < 1:
        raise ValueError("n_positions must be >= 1")
    positions = np.arange(1, n + 1, dtype=float)
    labels = MONTH_LABELS[:n] if n <= len(MONTH_LABELS) else [f"t{i:03d}" for i in range(1, n + 1)]
    grid = CandidateGrid(positions=positions, labels=labels)

    centre = 1.0 + 6.0 * (n - 1) / 11.0 if n > 1 else 1.0
    width = max(1.5 * (n - 1) / 11.0, 0.5)
    ensembles = {
        "A": make_seasonal_ensemble(
            positions, n_realizations, peak=centre, width=width, noise=noise, seed=seed, name="A"
        ),
        "B": make_seasonal_ensemble(
            positions,
            n_realizations,
            amplitude=15.0,
            peak=centre - 1.5 * width,
            width=width,
            noise=noise,
            seed=seed + 1,
            name="B",
        ),
    }
    if resample_knots is not None:
        ensembles = {name: on_uniform_knots(ens, positions, int(resample_knots)) for name, ens in ensembles.items()}
    baselines = {
        "control": 3.0 * np.cos(2.0 * np.pi * (positions - 1.0) / max(n, 1)),
        "zero": np.zeros(n, dtype=float),
    }
    meta: dict[str, Any] = {
        "source": "synthetic",
        "n_realizations": int(n_realizations),
        "noise": float(noise),
        "seed": int(seed),
        "resample_knots": None if resample_knots is None else int(resample_knots),
    }
    return EnsembleBundle(grid=grid, ensembles=ensembles, baselines=baselines, meta=meta)
