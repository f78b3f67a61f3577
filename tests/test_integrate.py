import numpy as np
import pytest

from pathfinder.cost.integrate import DEFAULT_REL_TOL, integrate_squared, integrate_vector


def test_integrate_vector_polynomials() -> None:
    values, result = integrate_vector(lambda x: np.array([x, x * x]), 0.0, 1.0)

    np.testing.assert_allclose(values, [0.5, 1.0 / 3.0], rtol=1e-10)
    assert result.value == pytest.approx(0.5 + 1.0 / 3.0)
    assert result.converged
    assert result.neval > 0


def test_zero_width_interval_skips_integration() -> None:
    calls: list[float] = []

    def func(x: float) -> np.ndarray:
        calls.append(x)
        return np.array([1.0, 2.0])

    values, result = integrate_vector(func, 2.0, 2.0)

    np.testing.assert_array_equal(values, [0.0, 0.0])
    assert result.value == 0.0
    assert result.converged
    assert result.neval == 0


def test_reversed_bounds_raise() -> None:
    with pytest.raises(ValueError, match="start <= stop"):
        integrate_vector(lambda x: np.array([x]), 1.0, 0.0)


def test_subdivision_limit_reports_non_convergence() -> None:
    _, result = integrate_vector(lambda x: np.array([np.sin(40.0 * x)]), 0.0, 10.0, limit=1, rel_tol=1e-12)

    assert not result.converged
    assert np.isfinite(result.value)


def test_integrate_squared_uses_breakpoints() -> None:
    result = integrate_squared(lambda x: np.array([abs(x - 1.0)]), 0.0, 2.0, points=np.array([0.0, 1.0, 2.0]))

    assert result.value == pytest.approx(2.0 / 3.0, rel=1e-10)
    assert result.converged


def test_default_tolerance_matches_machine_epsilon_power() -> None:
    assert DEFAULT_REL_TOL == pytest.approx(np.finfo(float).eps ** 0.1)
