from __future__ import annotations

import csv
import json
import math
from pathlib import Path
from typing import Any

import numpy as np

from pathfinder.types import DPTables, SelectionResult


def _write_csv(path: Path, rows: list[dict[str, Any]]) -> None:
    if not rows:
        path.write_text("")
        return
    keys = list(rows[0].keys())
    seen = set(keys)
    for row in rows[1:]:
        for key in row.keys():
            if key in seen:
                continue
            seen.add(key)
            keys.append(key)
    with path.open("w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=keys)
        writer.writeheader()
        writer.writerows(rows)


def _node_label(node: int, n_candidates: int) -> str:
    if node == 0:
        return "start"
    if node == n_candidates + 1:
        return "end"
    return str(node)


def table_rows(tables: DPTables, *, which: str) -> list[dict[str, Any]]:
    if which not in {"score", "link"}:
        raise ValueError(f"unsupported table: {which}")
    data = tables.score if which == "score" else tables.link
    n = tables.n_candidates
    rows: list[dict[str, Any]] = []
    for node in range(data.shape[0]):
        row: dict[str, Any] = {"node": _node_label(node, n)}
        for e in range(data.shape[1]):
            value = data[node, e]
            if which == "score":
                row[f"e{e}"] = float(value) if math.isfinite(float(value)) else "inf"
            else:
                row[f"e{e}"] = int(value)
        rows.append(row)
    return rows


def _fmt_cost(value: float) -> str:
    return f"{value:.6g}" if math.isfinite(value) else "inf"


def json_safe(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(k): json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [json_safe(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return json_safe(obj.tolist())
    if isinstance(obj, np.generic):
        return json_safe(obj.item())
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj


def write_report(
    report_dir: str | Path,
    *,
    run_id: str,
    result: SelectionResult,
    summary_payload: dict[str, Any],
    labels: list[str] | None = None,
) -> Path:
    out_dir = Path(report_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    summary = dict(summary_payload)
    summary["run_id"] = run_id
    summary["selection"] = result.to_dict()
    if labels:
        summary["selection"]["labels"] = [str(labels[int(i)]) for i in result.indices]

    (out_dir / "summary.json").write_text(json.dumps(json_safe(summary), ensure_ascii=False, indent=2))
    _write_csv(out_dir / "score_table.csv", table_rows(result.tables, which="score"))
    _write_csv(out_dir / "link_table.csv", table_rows(result.tables, which="link"))

    n = result.tables.n_candidates
    k = result.tables.budget
    lines = [
        f"# Subset Selection Report: {run_id}",
        "",
        f"- variant: {result.meta.get('variant', 'n/a')}",
        f"- cost_mode: {result.cost_mode.value}",
        f"- degree: {result.degree}",
        f"- candidates: {n}",
        f"- num_subsamples: {k}",
        f"- cost: {_fmt_cost(result.cost)}",
        f"- edges_evaluated: {result.edges_evaluated}",
        f"- non_converged: {result.non_converged}",
        "",
        "## Selected Positions",
        "",
        "| node | index | position | label |",
        "|---:|---:|---:|---|",
    ]
    for node, idx, pos in zip(result.nodes, result.indices, result.positions):
        label = str(labels[int(idx)]) if labels else ""
        lines.append(f"| {int(node)} | {int(idx)} | {float(pos):.6g} | {label} |")

    lines.extend(
        [
            "",
            "## Cost by Budget",
            "",
            "| num_subsamples | cost |",
            "|---:|---:|",
        ]
    )
    for e in range(1, k + 1):
        lines.append(f"| {e} | {_fmt_cost(float(result.tables.score[n + 1, e]))} |")

    evaluation = dict(summary.get("evaluation") or {})
    if "rmse_selected" in evaluation:
        lines.extend(
            [
                "",
                "## Held-out Evaluation",
                "",
                "| metric | value |",
                "|---|---:|",
            ]
        )
        for key in (
            "rmse_selected",
            "rmse_uniform",
            "rmse_random_mean",
            "improvement_vs_uniform",
            "improvement_vs_random",
        ):
            value = evaluation.get(key)
            if value is None:
                continue
            lines.append(f"| {key} | {float(value):.4f} |")

    (out_dir / "report.md").write_text("\n".join(lines) + "\n")
    return out_dir
