from __future__ import annotations

import json
from pathlib import Path

import h5py
import numpy as np

from pathfinder.types import CandidateGrid, EnsembleBundle, RealizationEnsemble


def save_ensemble_bundle(path: str | Path, bundle: EnsembleBundle) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    with h5py.File(out, "w") as handle:
        handle.create_dataset("grid", data=np.asarray(bundle.grid.positions, dtype=float))
        handle.attrs["labels"] = json.dumps(list(bundle.grid.labels))
        handle.attrs["meta"] = json.dumps(bundle.meta)

        ens_grp = handle.create_group("ensembles")
        for name, ensemble in bundle.ensembles.items():
            grp = ens_grp.create_group(name)
            grp.create_dataset("values", data=np.asarray(ensemble.values, dtype=float))
            if ensemble.positions is not None:
                grp.create_dataset("positions", data=np.asarray(ensemble.positions, dtype=float))

        base_grp = handle.create_group("baselines")
        for name, baseline in bundle.baselines.items():
            base_grp.create_dataset(name, data=np.asarray(baseline, dtype=float))

    return out


def load_ensemble_bundle(path: str | Path) -> EnsembleBundle:
    src = Path(path)
    with h5py.File(src, "r") as handle:
        if "grid" not in handle:
            raise ValueError(f"ensemble bundle has no grid: {src}")
        grid = CandidateGrid(
            positions=np.asarray(handle["grid"]),
            labels=json.loads(str(handle.attrs.get("labels", "[]"))),
        )
        meta = json.loads(str(handle.attrs.get("meta", "{}")))

        ensembles: dict[str, RealizationEnsemble] = {}
        for name in sorted(handle.get("ensembles", {}).keys()):
            grp = handle["ensembles"][name]
            positions = np.asarray(grp["positions"]) if "positions" in grp else None
            ensembles[name] = RealizationEnsemble(
                values=np.asarray(grp["values"]),
                positions=positions,
                name=name,
            )

        baselines: dict[str, np.ndarray] = {}
        for name in sorted(handle.get("baselines", {}).keys()):
            baselines[name] = np.asarray(handle["baselines"][name])

    return EnsembleBundle(grid=grid, ensembles=ensembles, baselines=baselines, meta=meta)
