from __future__ import annotations

from typing import Dict, Tuple

from graphviz import Digraph
from graphviz.backend import ExecutableNotFound

from .func_graph import FuncAnalysisResult
from .node_types import SymbolKey

_DEAD = "#F44336"  # red
_ROOT = "#4CAF50"  # green
_ALIVE = "#E0E0E0"


def _node_id(key: SymbolKey) -> str:
    return f"{key[0]}#{key[1]}"


def _short_name(full_path: str) -> str:
    """Owner and name only: ``api::v1::Client::send`` -> ``Client::send``."""
    return "::".join(full_path.split("::")[-2:])


def render_call_graph(
    result: FuncAnalysisResult,
    output_base: str,
    fmt: str = "svg",
    only_dead: bool = False,
) -> Tuple[str, str]:
    """Write ``<output_base>.dot`` and, when Graphviz is installed, the rendered image.

    Dead functions are red, roots green. With ``only_dead`` the graph keeps
    dead functions plus their direct callees and callers.
    Returns (dot_path, image_path); image_path is "" without the executable.
    """
    graph = result.graph
    dot = Digraph(
        "deadfn",
        graph_attr={"rankdir": "LR", "splines": "spline"},
        node_attr={"shape": "box", "style": "rounded,filled", "fontname": "Helvetica"},
        edge_attr={"arrowhead": "vee"},
    )
    if graph is None:
        dot_path = f"{output_base}.dot"
        dot.save(dot_path)
        return dot_path, ""

    dead = {s.key for s in result.dead}
    keep = set(graph.symbols)
    if only_dead:
        keep = set(dead)
        for src, dsts in graph.edges.items():
            if src in dead:
                keep.update(dsts)
            if dsts & dead:
                keep.add(src)

    colors: Dict[SymbolKey, str] = {}
    for key in sorted(keep):
        sym = graph.symbols[key]
        if key in dead:
            colors[key] = _DEAD
        elif key in result.roots:
            colors[key] = _ROOT
        else:
            colors[key] = _ALIVE
        label = f"{_short_name(sym.full_path)}\n{sym.file}:{sym.span.start_line}"
        dot.node(_node_id(key), label=label, fillcolor=colors[key], tooltip=sym.full_path)

    for src in sorted(graph.edges):
        if src not in keep:
            continue
        for dst in sorted(graph.edges[src]):
            if dst not in keep:
                continue
            # edges out of dead code are drawn dashed
            style = "dashed" if src in dead else "solid"
            dot.edge(_node_id(src), _node_id(dst), color="black", style=style)

    dot_path = f"{output_base}.dot"
    image_path = f"{output_base}.{fmt}"
    dot.save(dot_path)

    try:
        dot.render(output_base, format=fmt, cleanup=True)
    except ExecutableNotFound:
        # Only DOT written; caller should inform user
        image_path = ""
    return dot_path, image_path
