from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from pathfinder.cost.integrate import EDGE_SUBDIVISIONS
from pathfinder.types import CostMode

VARIANT_KINDS = ("f1", "f2", "f3", "multi")

DEFAULT_CONFIG: dict[str, Any] = {
    "ensemble_h5": None,
    "report_dir": "reports",
    "selection": {
        "num_subsamples": 4,
        "cost_mode": "fast",
        "degree": 1,
        "subdivisions": EDGE_SUBDIVISIONS,
        "rel_tol": None,
        "resample_degree": 1,
        "n_jobs": None,
    },
    "variant": {
        "kind": "f1",
        "ensemble": "A",
        "baseline": None,
        "ensemble_b": None,
        "normalize": "std",
        "zero_variance": "zero",
        "channels": [],
    },
    "evaluation": {
        "enabled": True,
        "holdout_fraction": 0.2,
        "random_trials": 20,
        "eval_points": 200,
        "seed": 0,
    },
    "synthetic": {
        "n_positions": 12,
        "n_realizations": 50,
        "noise": 0.5,
        "seed": 0,
        "resample_knots": None,
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("config must be a mapping")
    return data


def validate_config(cfg: dict[str, Any]) -> dict[str, Any]:
    selection = dict(cfg.get("selection") or {})
    variant = dict(cfg.get("variant") or {})

    CostMode.parse(selection.get("cost_mode", "fast"))
    if int(selection.get("num_subsamples", 0)) < 1:
        raise ValueError("selection.num_subsamples must be >= 1")
    if int(selection.get("degree", 1)) < 0:
        raise ValueError("selection.degree must be >= 0")
    if int(selection.get("subdivisions", 1)) < 1:
        raise ValueError("selection.subdivisions must be >= 1")

    kind = str(variant.get("kind", "f1")).strip().lower()
    if kind not in VARIANT_KINDS:
        raise ValueError(f"unsupported variant kind: {kind!r}")
    if kind == "f3" and not variant.get("ensemble_b"):
        raise ValueError("variant.ensemble_b is required for kind=f3")
    if kind == "multi":
        channels = list(variant.get("channels") or [])
        if not channels:
            raise ValueError("variant.channels must not be empty for kind=multi")
        for c, entry in enumerate(channels):
            if not isinstance(entry, dict) or not entry.get("ensemble"):
                raise ValueError(f"variant.channels[{c}] must be a mapping with an ensemble name")
    variant["kind"] = kind
    cfg["variant"] = variant
    cfg["selection"] = selection
    return cfg


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path is not None:
        cfg = _merge(cfg, load_yaml(Path(path)))
    if overrides:
        cfg = _merge(cfg, overrides)
    return validate_config(cfg)
