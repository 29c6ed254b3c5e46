"""
Output formatting - plain text, JSON and the function report.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from .func_graph import FuncAnalysisResult

logger = logging.getLogger(__name__)

REPORT_FILE = "dead_functions.json"


def render_plain(dead: Sequence[Any]) -> str:
    if not dead:
        return "No dead modules found."
    lines = [f"DEAD MODULES ({len(dead)}):"]
    lines.extend(f"- {d}" for d in dead)
    return "\n".join(lines)


def render_json(dead: Sequence[Any]) -> str:
    """``{"dead": [...]}`` pretty-printed; never raises."""
    try:
        return json.dumps({"dead": list(dead)}, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as exc:
        logger.warning("JSON serialization failed: %s", exc)
        items = ", ".join(json.dumps(str(d), ensure_ascii=False) for d in dead)
        return '{"dead": [%s]}' % items


def print_plain(dead: Sequence[Any]) -> None:
    print(render_plain(dead))


def print_json(dead: Sequence[Any]) -> None:
    print(render_json(dead))


def function_report_dict(result: FuncAnalysisResult) -> Dict[str, Any]:
    stats = result.stats
    return {
        "total_functions": stats.total_symbols,
        "reachable_functions": stats.reachable_count,
        "dead_functions": stats.dead_count,
        "public_dead": stats.public_dead,
        "private_dead": stats.private_dead,
        "stats": stats.to_dict(),
        "dead": [
            {
                "name": s.name,
                "full_path": s.full_path,
                "visibility": s.visibility.value,
                "file": s.file,
                "line": s.span.start_line,
                "is_method": s.is_method,
            }
            for s in result.dead
        ],
        "diagnostics": [str(d) for d in result.diagnostics],
        "failed_files": list(result.failed_files),
    }


def render_function_report(result: FuncAnalysisResult) -> str:
    stats = result.stats
    lines = [
        "=== Dead Function Analysis ===",
        "",
        f"Total functions: {stats.total_symbols}",
        f"Reachable:       {stats.reachable_count}",
        f"Dead:            {stats.dead_count}",
        f"  - Public:      {stats.public_dead}",
        f"  - Private:     {stats.private_dead}",
    ]
    if stats.ignored_count:
        lines.append(f"Ignored:         {stats.ignored_count}")
    lines.append("")
    if result.dead:
        lines.append("DEAD FUNCTIONS:")
        for sym in result.dead:
            marker = "[pub]" if sym.visibility.is_public else "[priv]"
            lines.append(f"  {marker} {sym.full_path} ({sym.file})")
    else:
        lines.append("No dead functions found.")
    if result.failed_files:
        lines.append("")
        lines.append(f"FAILED FILES ({len(result.failed_files)}):")
        lines.extend(f"  {f}" for f in result.failed_files)
    return "\n".join(lines)


def save_report(result: FuncAnalysisResult, output_dir: Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    out = output_dir / REPORT_FILE
    out.write_text(json.dumps(function_report_dict(result), ensure_ascii=False, indent=2), encoding="utf-8")
    return out


def save_call_graph(result: FuncAnalysisResult, path: Path) -> Path:
    """Write the call graph (nodes, edges, stats) as JSON."""
    if result.graph is None:
        raise ValueError("analysis result carries no call graph")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.graph.to_dict(result), ensure_ascii=False, indent=2), encoding="utf-8")
    return path
