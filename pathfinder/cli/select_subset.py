from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from pathfinder._logging_utils import configure_logging
from pathfinder.config import load_config
from pathfinder.ensemble.synthetic import make_synthetic_bundle
from pathfinder.eval.reconstruction import compare_with_baselines, split_holdout
from pathfinder.io.ensemble_store import load_ensemble_bundle
from pathfinder.reporting.report import json_safe, write_report
from pathfinder.selection.variants import (
    find_path_f2,
    find_path_f3,
    find_path_multi,
    shifted_realizations,
)
from pathfinder.types import EnsembleBundle, RealizationEnsemble, SelectionResult, SignalChannel

logger = logging.getLogger("pathfinder.cli.select_subset")


def _resolve_path(raw: str | Path, *, base: Path) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    cwd_candidate = (Path.cwd() / path).resolve()
    if cwd_candidate.exists():
        return cwd_candidate
    return (base / path).resolve()


def _load_bundle(cfg: dict[str, Any], *, base: Path) -> tuple[EnsembleBundle, str]:
    raw = cfg.get("ensemble_h5")
    if raw:
        path = _resolve_path(raw, base=base)
        if not path.exists():
            raise FileNotFoundError(f"ensemble bundle not found: {path}")
        return load_ensemble_bundle(path), str(path)
    synth = dict(cfg.get("synthetic") or {})
    return make_synthetic_bundle(**synth), "synthetic"


def _selection_kwargs(selection: dict[str, Any]) -> dict[str, Any]:
    n_jobs = selection.get("n_jobs")
    return {
        "cost_mode": str(selection.get("cost_mode", "fast")),
        "degree": int(selection.get("degree", 1)),
        "resample_degree": int(selection.get("resample_degree", 1)),
        "subdivisions": int(selection.get("subdivisions", 500)),
        "rel_tol": None if selection.get("rel_tol") is None else float(selection["rel_tol"]),
        "n_jobs": None if n_jobs is None else int(n_jobs),
    }


def _run_variant(
    bundle: EnsembleBundle,
    cfg: dict[str, Any],
) -> tuple[SelectionResult, dict[str, Any]]:
    selection = dict(cfg["selection"])
    variant = dict(cfg["variant"])
    evaluation_cfg = dict(cfg.get("evaluation") or {})
    kind = variant["kind"]
    k = int(selection["num_subsamples"])
    kwargs = _selection_kwargs(selection)
    grid = bundle.grid

    if kind in {"f1", "f2"}:
        baseline = bundle.baseline(variant.get("baseline")) if kind == "f2" else None
        shifted = shifted_realizations(
            grid,
            bundle.ensemble(str(variant["ensemble"])),
            baseline,
            resample_degree=kwargs["resample_degree"],
        )
        result = find_path_f2(grid, None, RealizationEnsemble(values=shifted), k, **kwargs)
        result.meta["variant"] = kind
        if not bool(evaluation_cfg.get("enabled", True)):
            return result, {"skipped": "disabled"}

        # held-out scoring needs a selection that never saw the holdout rows
        train, holdout = split_holdout(
            shifted,
            float(evaluation_cfg.get("holdout_fraction", 0.2)),
            seed=int(evaluation_cfg.get("seed", 0)),
        )
        trained = find_path_f2(grid, None, RealizationEnsemble(values=train), k, **kwargs)
        evaluation = compare_with_baselines(
            grid.positions,
            holdout,
            trained.indices,
            random_trials=int(evaluation_cfg.get("random_trials", 20)),
            eval_points=int(evaluation_cfg.get("eval_points", 200)),
            seed=int(evaluation_cfg.get("seed", 0)),
        )
        evaluation["train_selected_indices"] = [int(i) for i in trained.indices]
        evaluation["train_cost"] = float(trained.cost)
        return result, evaluation

    if kind == "f3":
        result = find_path_f3(
            grid,
            bundle.ensemble(str(variant["ensemble"])),
            bundle.ensemble(str(variant["ensemble_b"])),
            k,
            normalize=str(variant.get("normalize", "std")),
            zero_variance=str(variant.get("zero_variance", "zero")),
            **kwargs,
        )
        return result, {"skipped": "not supported for f3"}

    channels = [
        SignalChannel(
            ensemble=bundle.ensemble(str(entry["ensemble"])),
            baseline=bundle.baseline(entry.get("baseline")),
            weight=float(entry.get("weight", 1.0)),
            name=str(entry.get("name") or entry["ensemble"]),
        )
        for entry in variant["channels"]
    ]
    result = find_path_multi(grid, channels, k, **kwargs)
    return result, {"skipped": "not supported for multi"}


def main() -> None:
    parser = argparse.ArgumentParser(description="Select the subset of sampling positions that best reconstructs an ensemble")
    parser.add_argument("--config", default=None, help="Path to YAML run config")
    parser.add_argument("--run-id", required=True, help="Run id (report sub-directory)")
    parser.add_argument("--ensemble-h5", default=None, help="Ensemble bundle HDF5 (overrides config)")
    parser.add_argument("--num-subsamples", type=int, default=None, help="Number of positions to select")
    parser.add_argument("--cost-mode", choices=["fast", "accurate"], default=None, help="Edge cost aggregation")
    parser.add_argument("--n-jobs", type=int, default=None, help="Threads per DP column")
    parser.add_argument("--output-root", default=None, help="Report root directory (overrides report_dir)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    args = parser.parse_args()

    configure_logging(args.verbose)

    overrides: dict[str, Any] = {"selection": {}}
    if args.ensemble_h5:
        overrides["ensemble_h5"] = args.ensemble_h5
    if args.output_root:
        overrides["report_dir"] = args.output_root
    if args.num_subsamples is not None:
        overrides["selection"]["num_subsamples"] = int(args.num_subsamples)
    if args.cost_mode is not None:
        overrides["selection"]["cost_mode"] = args.cost_mode
    if args.n_jobs is not None:
        overrides["selection"]["n_jobs"] = int(args.n_jobs)

    cfg_path = Path(args.config).resolve() if args.config else None
    cfg = load_config(cfg_path, overrides)
    base = cfg_path.parent if cfg_path is not None else Path.cwd()

    bundle, source = _load_bundle(cfg, base=base)
    logger.info("loaded %d ensembles on %d positions from %s", len(bundle.ensembles), bundle.grid.size, source)

    result, evaluation = _run_variant(bundle, cfg)

    report_dir = _resolve_path(str(cfg.get("report_dir") or "reports"), base=base) / args.run_id
    summary: dict[str, Any] = {
        "status": "ok",
        "created_at": datetime.now(timezone.utc).isoformat(),
        "source": source,
        "variant": cfg["variant"]["kind"],
        "grid_size": int(bundle.grid.size),
        "num_subsamples": int(result.nodes.shape[0]),
        "cost_mode": result.cost_mode.value,
        "cost": float(result.cost),
        "selected_indices": [int(i) for i in result.indices],
        "selected_positions": [float(x) for x in np.asarray(result.positions)],
        "evaluation": evaluation,
        "report_dir": str(report_dir),
        "config": cfg,
    }
    write_report(report_dir, run_id=args.run_id, result=result, summary_payload=summary, labels=bundle.grid.labels)
    print(json.dumps(json_safe(summary), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
