"""
Analysis driver: per-file extraction, aggregation in input order, graph build.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, TYPE_CHECKING

from .calls import extract_calls
from .func_graph import FuncAnalysisResult, FuncGraph, RootPolicy
from .node_types import CallExtraction, Diagnostic, ExtractionResult
from .parsing import Source
from .scan import collect_rs_files
from .symbols import extract_symbols

if TYPE_CHECKING:
    from .config_loader import DeadfnConfig

logger = logging.getLogger(__name__)

# Below this many files the thread pool costs more than it saves.
PARALLEL_THRESHOLD = 8

FileResult = Tuple[ExtractionResult, CallExtraction]


def _extract_file(file: str, source: Source, strict: bool) -> FileResult:
    return extract_symbols(file, source, strict=strict), extract_calls(file, source, strict=strict)


def _extract_all(sources: Mapping[str, Source], strict: bool, workers: Optional[int]) -> List[FileResult]:
    items = list(sources.items())
    if len(items) < PARALLEL_THRESHOLD or workers == 1:
        return [_extract_file(f, s, strict) for f, s in items]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_extract_file, f, s, strict) for f, s in items]
        # a ParseError in strict mode propagates from result()
        return [fut.result() for fut in futures]


def analyze_sources(
    sources: Mapping[str, Source],
    policy: Optional[RootPolicy] = None,
    strict: bool = False,
    workers: Optional[int] = None,
) -> FuncAnalysisResult:
    """Find dead functions in ``{file_id: source}``.

    Dead symbols come back in input file order, then declaration order.
    In strict mode the first file with a syntax error raises ``ParseError``.
    """
    if workers is not None and workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    results = _extract_all(sources, strict, workers)

    symbols = []
    calls = []
    uses: Dict[str, Dict[str, str]] = {}
    diagnostics: List[Diagnostic] = []
    for sym_result, call_result in results:
        symbols.extend(sym_result.symbols)
        calls.extend(call_result.calls)
        for module, imports in call_result.uses.items():
            uses.setdefault(module, {}).update(imports)
        diagnostics.extend(sym_result.diagnostics)
        diagnostics.extend(call_result.diagnostics)

    graph = FuncGraph.build(symbols, calls, uses)
    result = graph.analyze(policy)
    # both extractors report the same syntax errors
    result.diagnostics = list(dict.fromkeys(diagnostics))
    logger.info(
        "analyzed %d files: %d functions, %d dead",
        len(sources),
        result.stats.total_symbols,
        result.stats.dead_count,
    )
    return result


def read_sources(files: List[Path], base: Optional[Path] = None) -> Tuple[Dict[str, str], List[str]]:
    """Read files as UTF-8; unreadable ones are returned separately."""
    sources: Dict[str, str] = {}
    failed: List[str] = []
    for path in files:
        try:
            file_id = path.relative_to(base).as_posix() if base is not None else path.as_posix()
        except ValueError:
            file_id = path.as_posix()
        try:
            sources[file_id] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("cannot read %s: %s", path, exc)
            failed.append(file_id)
    return sources, failed


def analyze_path(root: Path, config: Optional["DeadfnConfig"] = None) -> FuncAnalysisResult:
    """Scan ``root`` for ``.rs`` files and analyse them."""
    return analyze_paths([root], config)


def analyze_paths(roots: Sequence[Path], config: Optional["DeadfnConfig"] = None) -> FuncAnalysisResult:
    from .config_loader import DeadfnConfig

    config = config or DeadfnConfig()
    roots = [Path(r) for r in roots]
    files = collect_rs_files([str(r) for r in roots], config.exclude)
    # file ids are relative to the root when there is a single directory
    base = roots[0] if len(roots) == 1 and roots[0].is_dir() else None
    sources, failed = read_sources(files, base)
    result = analyze_sources(sources, config.root_policy(), strict=config.strict, workers=config.workers)
    result.failed_files = failed
    result.diagnostics.extend(Diagnostic(f, "file could not be read") for f in failed)
    return result
