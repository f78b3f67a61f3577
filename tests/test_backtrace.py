import numpy as np
import pytest

from pathfinder.dp.backtrace import backtrace


def _link_table() -> np.ndarray:
    # 4 candidates, budget 2: end -> 4 -> 2 -> start
    link = np.zeros((6, 3), dtype=int)
    link[5, 2] = 4
    link[4, 2] = 2
    link[2, 1] = 0
    return link


def test_backtrace_from_end_and_from_real_node() -> None:
    link = _link_table()

    np.testing.assert_array_equal(backtrace(link, 5, 2), [2, 4])
    np.testing.assert_array_equal(backtrace(link, 4, 2), [2, 4])
    np.testing.assert_array_equal(backtrace(link, 2, 1), [2])


def test_backtrace_with_no_edges_is_empty() -> None:
    out = backtrace(_link_table(), 5, 0)
    assert out.shape == (0,)


def test_backtrace_rejects_cycles() -> None:
    link = _link_table()
    link[4, 2] = 4
    with pytest.raises(ValueError, match="does not precede"):
        backtrace(link, 5, 2)


def test_backtrace_rejects_unreachable_end() -> None:
    link = _link_table()
    link[5, 2] = 0
    with pytest.raises(ValueError, match="no path"):
        backtrace(link, 5, 2)


def test_backtrace_rejects_out_of_range_arguments() -> None:
    link = _link_table()
    with pytest.raises(ValueError, match="edge budget"):
        backtrace(link, 5, 3)
    with pytest.raises(ValueError, match="outside link table"):
        backtrace(link, 7, 1)


def test_backtrace_rejects_path_longer_than_budget() -> None:
    link = _link_table()
    link[2, 1] = 1
    with pytest.raises(ValueError):
        backtrace(link, 5, 2)
