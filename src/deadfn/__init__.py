"""
deadfn - find unreachable functions in a Rust source tree

Simple API:

    from deadfn import analyze_sources, analyze_path

    result = analyze_sources({"src/lib.rs": "pub fn a() { b() } fn b() {} fn c() {}"})
    print(result.dead_entries())   # [("c", "src/lib.rs")]

    # Scan a crate on disk
    result = analyze_path("my_crate")
    print(f"{result.stats.dead_count} of {result.stats.total_symbols} functions are dead")
"""


def analyze_sources(*args, **kwargs):
    """Lazy import wrapper so importing the package does not load the parser."""
    from .analysis import analyze_sources as _analyze_sources

    return _analyze_sources(*args, **kwargs)


def analyze_path(*args, **kwargs):
    """Lazy import wrapper for analyze_path."""
    from .analysis import analyze_path as _analyze_path

    return _analyze_path(*args, **kwargs)


from .errors import ConfigError, DeadfnError, ParseError, ScopeError
from .visibility import Visibility, classify_visibility

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("deadfn")
except PackageNotFoundError:
    # Fallback for development/uninstalled package
    __version__ = "unknown"

__all__ = [
    "analyze_sources",
    "analyze_path",
    "Visibility",
    "classify_visibility",
    "DeadfnError",
    "ParseError",
    "ConfigError",
    "ScopeError",
    "__version__",
]
