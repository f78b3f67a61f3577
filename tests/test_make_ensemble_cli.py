import json
import subprocess
import sys

from pathfinder.io.ensemble_store import load_ensemble_bundle


def test_make_ensemble_cli_writes_bundle(tmp_path) -> None:
    out = tmp_path / "bundle.h5"
    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "pathfinder.cli.make_ensemble",
            "--output",
            str(out),
            "--n-realizations",
            "9",
            "--seed",
            "4",
        ],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr

    summary = json.loads(proc.stdout)
    assert summary["status"] == "ok"
    assert summary["ensembles"] == ["A", "B"]
    assert summary["baselines"] == ["control", "zero"]

    bundle = load_ensemble_bundle(out)
    assert bundle.ensemble("B").values.shape == (9, 12)
    assert bundle.meta["seed"] == 4


def test_make_ensemble_cli_resamples_onto_uniform_knots(tmp_path) -> None:
    out = tmp_path / "fine.h5"
    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "pathfinder.cli.make_ensemble",
            "--output",
            str(out),
            "--n-realizations",
            "5",
            "--resample-knots",
            "44",
        ],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr
    assert json.loads(proc.stdout)["resample_knots"] == 44

    bundle = load_ensemble_bundle(out)
    assert bundle.ensemble("A").positions.shape == (45,)
    assert bundle.ensemble("A").values.shape == (5, 45)
