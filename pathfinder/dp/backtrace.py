from __future__ import annotations

import numpy as np


def backtrace(link: np.ndarray, node: int, edges: int) -> np.ndarray:
    """Unwind predecessor links from ``(node, edges)`` down to the virtual root.

    ``node`` may be the virtual end ``N + 1``, whose closing edge does not use
    budget, or a real node ``1..N``. Returns the real nodes in increasing order.
    """
    table = np.asarray(link)
    if table.ndim != 2:
        raise ValueError("link table must be 2-D")
    n_rows, n_cols = table.shape
    end = n_rows - 1
    if not 0 <= int(edges) < n_cols:
        raise ValueError(f"edge budget {edges} outside link table")
    if not 0 <= int(node) <= end:
        raise ValueError(f"node {node} outside link table")

    e = int(edges)
    if e == 0:
        return np.zeros((0,), dtype=int)

    stack: list[int] = []
    current = int(node)
    if current == end:
        current = int(table[current, e])
        if current == 0:
            raise ValueError(f"no path reaches the end node with {e} edges")
    while current != 0:
        if not 1 <= current < end:
            raise ValueError(f"invalid link {current} in backtrace")
        if len(stack) >= n_cols - 1 or e < 1:
            raise ValueError("backtrace exceeded the edge budget")
        stack.append(current)
        prev = int(table[current, e])
        if prev != 0 and prev >= current:
            raise ValueError(f"link {prev} does not precede node {current}")
        current = prev
        e -= 1

    return np.asarray(stack[::-1], dtype=int)
