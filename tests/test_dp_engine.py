import logging

import numpy as np
import pytest

from pathfinder.cost.edge_cost import EdgeCostModel
from pathfinder.dp.engine import run_dp, select_from_model
from pathfinder.ensemble.synthetic import seasonal_curve
from pathfinder.errors import InsufficientCandidatesError

GRID = np.array([0.0, 1.0, 2.0])
TENT = np.array([[0.0, 10.0, 0.0]])


def _seasonal_model(**kwargs) -> EdgeCostModel:
    x = np.arange(1.0, 13.0)
    return EdgeCostModel(x, [seasonal_curve(x)[None, :]], **kwargs)


def test_tent_costs_by_budget() -> None:
    tables = run_dp(EdgeCostModel(GRID, [TENT]), 3)

    assert tables.score.shape == (5, 4)
    assert tables.n_candidates == 3
    assert tables.budget == 3
    assert tables.score[0, 0] == 0.0
    assert np.isinf(tables.score[4, 0])
    np.testing.assert_allclose(tables.score[4, 1:], [200.0 / 3.0, 100.0 / 3.0, 0.0], rtol=1e-8, atol=1e-10)


def test_infeasible_cells_stay_infinite() -> None:
    tables = run_dp(EdgeCostModel(GRID, [TENT]), 3)

    assert np.isinf(tables.score[1, 2])
    assert np.isinf(tables.score[2, 3])
    assert np.all(np.isinf(tables.score[1:4, 0]))


def test_selection_is_sorted_and_in_range() -> None:
    model = _seasonal_model()
    result = select_from_model(model, 4)

    assert result.nodes.shape == (4,)
    assert np.all(np.diff(result.nodes) > 0)
    assert result.nodes.min() >= 1
    assert result.nodes.max() <= 12
    np.testing.assert_array_equal(result.indices, result.nodes - 1)
    np.testing.assert_allclose(result.positions, model.positions[result.indices])
    assert result.cost == pytest.approx(float(result.tables.score[13, 4]))
    assert result.edges_evaluated > 0
    assert "elapsed_s" in result.meta


def test_full_budget_selects_every_position_at_zero_cost() -> None:
    result = select_from_model(_seasonal_model(), 12)

    np.testing.assert_array_equal(result.nodes, np.arange(1, 13))
    assert result.cost == pytest.approx(0.0, abs=1e-9)


def test_cost_decreases_with_budget_on_seasonal_curve() -> None:
    tables = run_dp(_seasonal_model(), 6)
    costs = tables.score[13, 1:]

    assert np.all(np.isfinite(costs))
    assert np.all(np.diff(costs) <= 1e-9 * costs[0])


def test_budget_larger_than_grid_raises() -> None:
    model = EdgeCostModel(GRID, [TENT])
    with pytest.raises(InsufficientCandidatesError) as excinfo:
        run_dp(model, 4)
    assert excinfo.value.requested == 4
    assert excinfo.value.available == 3
    assert "insufficient candidates" in str(excinfo.value)


@pytest.mark.parametrize("k", [0, -1, 2.5])
def test_invalid_budget_raises(k) -> None:
    with pytest.raises(ValueError):
        run_dp(EdgeCostModel(GRID, [TENT]), k)


def test_ties_resolve_to_smallest_predecessor() -> None:
    x = np.arange(5.0)
    model = EdgeCostModel(x, [np.zeros((3, 5))])

    result = select_from_model(model, 2)

    np.testing.assert_array_equal(result.nodes, [1, 2])
    assert result.cost == 0.0


def test_selection_is_deterministic() -> None:
    first = select_from_model(_seasonal_model(), 4)
    second = select_from_model(_seasonal_model(), 4)

    np.testing.assert_array_equal(first.nodes, second.nodes)
    np.testing.assert_array_equal(first.tables.score, second.tables.score)
    np.testing.assert_array_equal(first.tables.link, second.tables.link)


def test_thread_pool_matches_serial_fill() -> None:
    serial = select_from_model(_seasonal_model(), 4)
    threaded = select_from_model(_seasonal_model(), 4, n_jobs=2)

    np.testing.assert_array_equal(serial.nodes, threaded.nodes)
    np.testing.assert_allclose(serial.tables.score, threaded.tables.score)
    np.testing.assert_array_equal(serial.tables.link, threaded.tables.link)
    assert threaded.edges_evaluated == serial.edges_evaluated


def test_higher_degree_selection_logs_limitation(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="pathfinder"):
        result = select_from_model(_seasonal_model(degree=2), 4)

    assert result.degree == 2
    assert result.nodes.shape == (4,)
    assert np.all(np.diff(result.nodes) > 0)
    assert any("need not give zero cost" in rec.getMessage() for rec in caplog.records)


def test_non_converged_integrations_are_counted(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="pathfinder"):
        result = select_from_model(_seasonal_model(subdivisions=1), 3)

    assert result.nodes.shape == (3,)
    assert result.non_converged > 0
    assert any("did not converge" in rec.getMessage() for rec in caplog.records)
