from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np


def _readonly(arr: np.ndarray) -> np.ndarray:
    out = np.array(arr, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def _check_increasing(positions: np.ndarray, name: str) -> None:
    if positions.ndim != 1:
        raise ValueError(f"{name} must be 1-D")
    if positions.size == 0:
        raise ValueError(f"{name} must not be empty")
    if not np.all(np.isfinite(positions)):
        raise ValueError(f"{name} must be finite")
    if positions.size > 1 and not np.all(np.diff(positions) > 0.0):
        raise ValueError(f"{name} must be strictly increasing")


class CostMode(str, Enum):
    ACCURATE = "accurate"
    FAST = "fast"

    @classmethod
    def parse(cls, value: CostMode | str) -> CostMode:
        if isinstance(value, CostMode):
            return value
        text = str(value).strip().lower()
        for mode in cls:
            if mode.value == text:
                return mode
        raise ValueError(f"unsupported cost mode: {value!r}")


@dataclass(slots=True)
class CandidateGrid:
    positions: np.ndarray
    labels: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        pos = np.asarray(self.positions, dtype=float)
        _check_increasing(pos, "grid positions")
        self.positions = _readonly(pos)
        self.labels = [str(x) for x in self.labels]
        if self.labels and len(self.labels) != pos.shape[0]:
            raise ValueError("labels length must match grid positions")

    @property
    def size(self) -> int:
        return int(self.positions.shape[0])


@dataclass(slots=True)
class RealizationEnsemble:
    values: np.ndarray
    positions: np.ndarray | None = None
    name: str = ""

    def __post_init__(self) -> None:
        vals = np.asarray(self.values, dtype=float)
        if vals.ndim == 1:
            vals = vals[None, :]
        if vals.ndim != 2:
            raise ValueError("ensemble values must be 2-D (realizations, positions)")
        if vals.shape[0] == 0 or vals.shape[1] == 0:
            raise ValueError("ensemble values must not be empty")
        if not np.all(np.isfinite(vals)):
            raise ValueError("ensemble values must be finite")
        self.values = _readonly(vals)
        if self.positions is not None:
            pos = np.asarray(self.positions, dtype=float)
            _check_increasing(pos, "ensemble positions")
            if pos.shape[0] != vals.shape[1]:
                raise ValueError("ensemble positions must match values second dimension")
            self.positions = _readonly(pos)

    @property
    def n_realizations(self) -> int:
        return int(self.values.shape[0])


@dataclass(slots=True)
class SignalChannel:
    ensemble: RealizationEnsemble
    baseline: np.ndarray | None = None
    weight: float = 1.0
    name: str = ""

    def __post_init__(self) -> None:
        if self.baseline is not None:
            base = np.asarray(self.baseline, dtype=float)
            if base.ndim != 1:
                raise ValueError("baseline must be 1-D")
            if not np.all(np.isfinite(base)):
                raise ValueError("baseline must be finite")
            self.baseline = _readonly(base)
        self.weight = float(self.weight)
        if not np.isfinite(self.weight):
            raise ValueError("channel weight must be finite")


@dataclass(slots=True)
class IntegralResult:
    value: float
    abserr: float
    converged: bool
    neval: int = 0


@dataclass(slots=True)
class DPTables:
    score: np.ndarray
    link: np.ndarray

    def __post_init__(self) -> None:
        self.score = np.asarray(self.score, dtype=float)
        self.link = np.asarray(self.link, dtype=int)
        if self.score.ndim != 2:
            raise ValueError("score table must be 2-D")
        if self.link.shape != self.score.shape:
            raise ValueError("link table shape must match score table")

    @property
    def n_candidates(self) -> int:
        return int(self.score.shape[0]) - 2

    @property
    def budget(self) -> int:
        return int(self.score.shape[1]) - 1


@dataclass(slots=True)
class SelectionResult:
    nodes: np.ndarray
    indices: np.ndarray
    positions: np.ndarray
    cost: float
    cost_mode: CostMode
    degree: int
    tables: DPTables
    edges_evaluated: int = 0
    non_converged: int = 0
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.nodes = np.asarray(self.nodes, dtype=int)
        self.indices = np.asarray(self.indices, dtype=int)
        self.positions = np.asarray(self.positions, dtype=float)
        if self.nodes.shape != self.indices.shape:
            raise ValueError("nodes and indices must have the same shape")

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [int(x) for x in self.nodes],
            "indices": [int(x) for x in self.indices],
            "positions": [float(x) for x in self.positions],
            "cost": float(self.cost),
            "cost_mode": self.cost_mode.value,
            "degree": int(self.degree),
            "num_subsamples": int(self.nodes.shape[0]),
            "edges_evaluated": int(self.edges_evaluated),
            "non_converged": int(self.non_converged),
            "meta": dict(self.meta),
        }


@dataclass(slots=True)
class EnsembleBundle:
    grid: CandidateGrid
    ensembles: dict[str, RealizationEnsemble] = field(default_factory=dict)
    baselines: dict[str, np.ndarray] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        n = self.grid.size
        fixed: dict[str, np.ndarray] = {}
        for name, base in self.baselines.items():
            arr = np.asarray(base, dtype=float)
            if arr.shape != (n,):
                raise ValueError(f"baseline {name!r} must have shape (N,)")
            fixed[str(name)] = arr
        self.baselines = fixed
        for name, ens in self.ensembles.items():
            if ens.positions is None and ens.values.shape[1] != n:
                raise ValueError(f"ensemble {name!r} must match grid size when positions are omitted")

    def ensemble(self, name: str) -> RealizationEnsemble:
        try:
            return self.ensembles[name]
        except KeyError as exc:
            raise ValueError(f"unknown ensemble: {name!r}") from exc

    def baseline(self, name: str | None) -> np.ndarray | None:
        if name is None:
            return None
        try:
            return self.baselines[name]
        except KeyError as exc:
            raise ValueError(f"unknown baseline: {name!r}") from exc
