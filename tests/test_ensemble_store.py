import numpy as np
import pytest

from pathfinder.ensemble.synthetic import make_seasonal_ensemble, make_synthetic_bundle
from pathfinder.io.ensemble_store import load_ensemble_bundle, save_ensemble_bundle


def test_ensemble_bundle_roundtrip(tmp_path) -> None:
    bundle = make_synthetic_bundle(n_realizations=6, seed=2)
    fine = np.linspace(1.0, 12.0, 34)
    bundle.ensembles["fine"] = make_seasonal_ensemble(bundle.grid.positions, 4, sample_positions=fine, name="fine")

    path = save_ensemble_bundle(tmp_path / "nested" / "bundle.h5", bundle)
    loaded = load_ensemble_bundle(path)

    assert path.exists()
    np.testing.assert_array_equal(loaded.grid.positions, bundle.grid.positions)
    assert loaded.grid.labels == bundle.grid.labels
    assert loaded.meta == bundle.meta
    assert sorted(loaded.ensembles) == ["A", "B", "fine"]
    np.testing.assert_array_equal(loaded.ensemble("A").values, bundle.ensemble("A").values)
    assert loaded.ensemble("A").positions is None
    np.testing.assert_array_equal(loaded.ensemble("fine").positions, fine)
    np.testing.assert_array_equal(loaded.baseline("control"), bundle.baseline("control"))


def test_load_rejects_file_without_grid(tmp_path) -> None:
    import h5py

    path = tmp_path / "empty.h5"
    with h5py.File(path, "w") as handle:
        handle.create_group("ensembles")

    with pytest.raises(ValueError, match="no grid"):
        load_ensemble_bundle(path)
