#!/usr/bin/env python3
"""
deadfn command line.

  deadfn [PATH ...]                 report dead functions (exit 1 when any)
  deadfn --json                     {"dead": [...]} on stdout
  deadfn --explain api::load        show the root -> target call chain
  deadfn --dot callgraph            also write callgraph.dot (+ svg with Graphviz)
  deadfn --export-callgraph g.json  dump nodes, edges and stats as JSON
  deadfn --init                     write an example deadfn.yaml
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config_loader import FORMATS, DeadfnConfig, load_config, save_example_config
from .errors import ConfigError, ParseError

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_DEAD = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deadfn", description="Find unreachable functions in a Rust source tree")
    parser.add_argument("paths", nargs="*", help="Crate or source directories (default from config, else '.')")
    parser.add_argument("--config", default=None, help="Config file (YAML or TOML)")
    parser.add_argument("--format", choices=FORMATS, default=None, help="Output format")
    parser.add_argument("--json", action="store_true", help="Shortcut for --format json")
    parser.add_argument("--strict", action="store_true", help="Fail on the first syntax error")
    parser.add_argument("--keep-alive", action="append", default=[], metavar="PATH",
                        help="Extra root: full path, path suffix or glob (repeatable)")
    parser.add_argument("--ignore", action="append", default=[], metavar="PATTERN",
                        help="Never report functions matching this glob (repeatable)")
    parser.add_argument("--dot", default=None, metavar="OUT", help="Write the call graph to OUT.dot")
    parser.add_argument("--export-callgraph", default=None, metavar="FILE",
                        help="Write the call graph as JSON (nodes, edges, stats) to FILE")
    parser.add_argument("--output", default=None, metavar="DIR", help="Save dead_functions.json under DIR")
    parser.add_argument("--explain", default=None, metavar="PATH", help="Explain why a function is alive")
    parser.add_argument("--workers", type=_positive_int, default=None, help="Extraction threads")
    parser.add_argument("--init", action="store_true", help="Write an example deadfn.yaml and exit")
    parser.add_argument("--force", action="store_true", help="With --init, overwrite an existing file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _apply_overrides(config: DeadfnConfig, args: argparse.Namespace) -> DeadfnConfig:
    if args.paths:
        config.paths = list(args.paths)
    if args.json:
        config.format = "json"
    elif args.format:
        config.format = args.format
    if args.strict:
        config.strict = True
    if args.keep_alive:
        config.keep_alive = config.keep_alive + list(args.keep_alive)
    if args.ignore:
        config.ignore = config.ignore + list(args.ignore)
    if args.output:
        config.output = args.output
    if args.workers is not None:
        config.workers = args.workers
    return config


def _init(force: bool) -> int:
    target = Path("deadfn.yaml")
    if target.exists() and not force:
        print(f"{target} already exists (use --force to overwrite)", file=sys.stderr)
        return EXIT_ERROR
    path = save_example_config(target)
    print(f"Wrote {path}")
    return EXIT_CLEAN


def run(args: argparse.Namespace) -> int:
    from .analysis import analyze_paths
    from .report import render_function_report, render_json, render_plain, save_call_graph, save_report

    start = Path(args.paths[0]) if args.paths else None
    config = _apply_overrides(load_config(args.config, start=start), args)
    result = analyze_paths(config.paths, config)

    for diag in result.diagnostics:
        logger.warning("%s", diag)

    if args.explain:
        graph = result.graph
        chain = graph.explain(args.explain, config.root_policy()) if graph is not None else None
        if chain is None:
            print(f"{args.explain}: not reachable from any root")
            return EXIT_DEAD
        print(" -> ".join(chain))
        return EXIT_CLEAN

    if config.format == "json":
        print(render_json([s.full_path for s in result.dead]))
    elif config.format == "plain":
        print(render_plain([s.full_path for s in result.dead]))
    else:
        print(render_function_report(result))

    if config.output:
        out = save_report(result, Path(config.output))
        print(f"Report saved: {out}", file=sys.stderr)
    if args.export_callgraph:
        out = save_call_graph(result, Path(args.export_callgraph))
        print(f"Call graph JSON: {out}", file=sys.stderr)
    if args.dot:
        from .graphviz_render import render_call_graph

        dot_path, image_path = render_call_graph(result, args.dot)
        print(f"Call graph: {dot_path}", file=sys.stderr)
        if image_path:
            print(f"Rendered:   {image_path}", file=sys.stderr)
        else:
            print("Graphviz 'dot' not found; only the .dot file was written", file=sys.stderr)

    return EXIT_DEAD if result.dead else EXIT_CLEAN


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.init:
        return _init(args.force)
    try:
        return run(args)
    except (ConfigError, ParseError) as exc:
        print(f"deadfn: {exc}", file=sys.stderr)
        return EXIT_ERROR


def console_main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    console_main()
