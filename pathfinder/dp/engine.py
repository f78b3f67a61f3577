from __future__ import annotations

import logging
import math
import time
from typing import Any

import numpy as np

from pathfinder.cost.edge_cost import EdgeCostModel
from pathfinder.dp.backtrace import backtrace
from pathfinder.errors import InsufficientCandidatesError
from pathfinder.types import DPTables, SelectionResult

logger = logging.getLogger(__name__)


def _check_budget(num_subsamples: int, n_candidates: int) -> int:
    k = int(num_subsamples)
    if k != num_subsamples:
        raise ValueError(f"num_subsamples must be an integer: {num_subsamples!r}")
    if k < 1:
        raise ValueError("num_subsamples must be >= 1")
    if k > n_candidates:
        raise InsufficientCandidatesError(k, n_candidates)
    return k


def _best_predecessor(
    cost_model: EdgeCostModel,
    score: np.ndarray,
    link: np.ndarray,
    j: int,
    e: int,
) -> tuple[float, int]:
    best = math.inf
    best_i = 0
    candidates = [0] if e == 1 else range(e - 1, j)
    for i in candidates:
        base = float(score[i, e - 1])
        if not math.isfinite(base):
            continue
        support = backtrace(link, i, e - 1) if (cost_model.path_dependent and i > 0) else ()
        edge, _ = cost_model.cost(i, j, support)
        total = base + edge
        if total < best:
            best = total
            best_i = int(i)
    return best, best_i


def _closing_edge(
    cost_model: EdgeCostModel,
    score: np.ndarray,
    link: np.ndarray,
    e: int,
) -> tuple[float, int]:
    n = cost_model.n_candidates
    best = math.inf
    best_i = 0
    for i in range(e, n + 1):
        base = float(score[i, e])
        if not math.isfinite(base):
            continue
        support = backtrace(link, i, e) if cost_model.path_dependent else ()
        edge, _ = cost_model.cost(i, n + 1, support)
        total = base + edge
        if total < best:
            best = total
            best_i = int(i)
    return best, best_i


def _fill_column(
    cost_model: EdgeCostModel,
    score: np.ndarray,
    link: np.ndarray,
    e: int,
    n_jobs: int | None,
) -> list[tuple[float, int]]:
    rows = list(range(e, cost_model.n_candidates + 1))
    if n_jobs is None or n_jobs == 1 or len(rows) < 2:
        return [_best_predecessor(cost_model, score, link, j, e) for j in rows]

    from joblib import Parallel, delayed

    return Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_best_predecessor)(cost_model, score, link, j, e) for j in rows
    )


def run_dp(
    cost_model: EdgeCostModel,
    num_subsamples: int,
    *,
    n_jobs: int | None = None,
) -> DPTables:
    n = cost_model.n_candidates
    k = _check_budget(num_subsamples, n)
    end = n + 1

    score = np.full((n + 2, k + 1), math.inf, dtype=float)
    link = np.zeros((n + 2, k + 1), dtype=int)
    score[0, 0] = 0.0

    if cost_model.path_dependent:
        logger.warning(
            "degree %d edge costs depend on the selected path; the reverse boundary correction pass is not applied, "
            "so selecting every position need not give zero cost",
            cost_model.degree,
        )

    for e in range(1, k + 1):
        t0 = time.perf_counter()
        results = _fill_column(cost_model, score, link, e, n_jobs)
        for j, (best, best_i) in zip(range(e, n + 1), results):
            score[j, e] = best
            link[j, e] = best_i
        logger.debug(
            "filled column %d/%d (%d rows, %d integrations so far) in %.3fs",
            e,
            k,
            n + 1 - e,
            cost_model.edges_evaluated,
            time.perf_counter() - t0,
        )

    for e in range(1, k + 1):
        best, best_i = _closing_edge(cost_model, score, link, e)
        score[end, e] = best
        link[end, e] = best_i

    return DPTables(score=score, link=link)


def select_from_model(
    cost_model: EdgeCostModel,
    num_subsamples: int,
    *,
    n_jobs: int | None = None,
    meta: dict[str, Any] | None = None,
) -> SelectionResult:
    t0 = time.perf_counter()
    tables = run_dp(cost_model, num_subsamples, n_jobs=n_jobs)
    n = cost_model.n_candidates
    k = tables.budget

    total = float(tables.score[n + 1, k])
    if not math.isfinite(total):
        raise RuntimeError(f"no feasible selection of {k} points among {n} candidates")
    nodes = backtrace(tables.link, n + 1, k)
    if nodes.shape != (k,):
        raise RuntimeError(f"backtrace returned {nodes.shape[0]} nodes, expected {k}")

    if cost_model.non_converged:
        logger.warning(
            "%d of %d edge integrations did not converge within %d subdivisions",
            cost_model.non_converged,
            cost_model.edges_evaluated,
            cost_model.subdivisions,
        )

    indices = nodes - 1
    info = dict(meta or {})
    info["elapsed_s"] = float(time.perf_counter() - t0)
    logger.info(
        "selected %d of %d positions (cost=%.6g, mode=%s)",
        k,
        n,
        total,
        cost_model.mode.value,
    )
    return SelectionResult(
        nodes=nodes,
        indices=indices,
        positions=cost_model.positions[indices],
        cost=total,
        cost_mode=cost_model.mode,
        degree=cost_model.degree,
        tables=tables,
        edges_evaluated=cost_model.edges_evaluated,
        non_converged=cost_model.non_converged,
        meta=info,
    )
