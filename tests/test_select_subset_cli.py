import json
import subprocess
import sys

import pytest

from pathfinder.ensemble.synthetic import make_synthetic_bundle
from pathfinder.io.ensemble_store import load_ensemble_bundle, save_ensemble_bundle
from pathfinder.selection import find_path_f1


def test_select_subset_cli_from_bundle(tmp_path) -> None:
    bundle_path = save_ensemble_bundle(tmp_path / "bundle.h5", make_synthetic_bundle(n_realizations=20))
    out_root = tmp_path / "reports"
    run_id = "s0"

    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "pathfinder.cli.select_subset",
            "--run-id",
            run_id,
            "--ensemble-h5",
            str(bundle_path),
            "--num-subsamples",
            "4",
            "--output-root",
            str(out_root),
        ],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr

    printed = json.loads(proc.stdout)
    assert printed["status"] == "ok"
    assert printed["source"] == str(bundle_path)

    out_dir = out_root / run_id
    summary = json.loads((out_dir / "summary.json").read_text())
    assert summary["status"] == "ok"
    assert summary["variant"] == "f1"
    assert summary["grid_size"] == 12
    assert len(summary["selected_indices"]) == 4
    assert summary["selected_indices"] == sorted(summary["selected_indices"])
    assert summary["evaluation"]["holdout_realizations"] == 4
    assert summary["selection"]["cost_mode"] == "fast"
    for name in ("score_table.csv", "link_table.csv", "report.md"):
        assert (out_dir / name).exists()


def test_select_subset_cli_multi_config(tmp_path) -> None:
    cfg_path = tmp_path / "multi.yaml"
    cfg_path.write_text(
        "report_dir: out\n"
        "selection:\n"
        "  num_subsamples: 3\n"
        "  cost_mode: accurate\n"
        "variant:\n"
        "  kind: multi\n"
        "  channels:\n"
        "    - ensemble: A\n"
        "      baseline: control\n"
        "    - ensemble: B\n"
        "      weight: 0.5\n"
        "synthetic:\n"
        "  n_realizations: 6\n"
    )

    proc = subprocess.run(
        [sys.executable, "-m", "pathfinder.cli.select_subset", "--config", str(cfg_path), "--run-id", "m0", "-v"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr

    summary = json.loads((tmp_path / "out" / "m0" / "summary.json").read_text())
    assert summary["source"] == "synthetic"
    assert summary["variant"] == "multi"
    assert summary["cost_mode"] == "accurate"
    assert summary["selection"]["meta"]["channels"] == ["A", "B"]
    assert "skipped" in summary["evaluation"]
    assert "selected 3 of 12 positions" in proc.stderr


def test_select_subset_cli_rejects_missing_bundle(tmp_path) -> None:
    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "pathfinder.cli.select_subset",
            "--run-id",
            "x",
            "--ensemble-h5",
            str(tmp_path / "missing.h5"),
            "--output-root",
            str(tmp_path),
        ],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode != 0
    assert "ensemble bundle not found" in proc.stderr


def test_select_subset_cli_selects_on_the_full_ensemble(tmp_path) -> None:
    bundle_path = save_ensemble_bundle(tmp_path / "bundle.h5", make_synthetic_bundle(n_realizations=25, seed=5))
    out_root = tmp_path / "reports"

    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "pathfinder.cli.select_subset",
            "--run-id",
            "full",
            "--ensemble-h5",
            str(bundle_path),
            "--num-subsamples",
            "4",
            "--output-root",
            str(out_root),
        ],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr

    bundle = load_ensemble_bundle(bundle_path)
    expected = find_path_f1(bundle.grid, bundle.ensemble("A"), 4)

    summary = json.loads((out_root / "full" / "summary.json").read_text())
    assert summary["selected_indices"] == [int(i) for i in expected.indices]
    assert summary["cost"] == pytest.approx(expected.cost, rel=1e-12)
    assert summary["selection"]["meta"]["realizations"] == 25
    assert len(summary["evaluation"]["train_selected_indices"]) == 4
    assert summary["evaluation"]["train_cost"] < summary["cost"]
