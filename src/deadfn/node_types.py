"""
Data types shared by the extractors, the call graph and the renderers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .visibility import Visibility

# (file, full_path): symbols with the same path in different files are distinct
SymbolKey = Tuple[str, str]


@dataclass(frozen=True)
class Span:
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Symbol:
    """A declared function, method or associated function."""

    name: str
    full_path: str
    visibility: Visibility
    file: str
    span: Span
    kind: str = "function"  # function|method
    owner: Optional[str] = None  # impl self type for methods
    trait_name: Optional[str] = None  # set for `impl Trait for Type` methods
    is_test: bool = False
    is_ffi: bool = False
    order: int = 0

    @property
    def key(self) -> SymbolKey:
        return (self.file, self.full_path)

    @property
    def is_method(self) -> bool:
        return self.kind == "method"


@dataclass(frozen=True)
class CallSite:
    """One call expression as written in source."""

    callee_name: str
    file: str
    span: Span
    enclosing_symbol: str  # full path of the calling function, or a `<module>` sentinel
    path: Optional[str] = None  # qualified path as written, e.g. "db::query"
    resolved_path: Optional[str] = None  # crate-relative path after use/self/super expansion
    is_method_call: bool = False
    from_macro: bool = False


@dataclass(frozen=True)
class Diagnostic:
    file: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        where = self.file if self.line is None else f"{self.file}:{self.line}"
        return f"{where}: {self.message}"


@dataclass
class ExtractionResult:
    symbols: List[Symbol] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class CallExtraction:
    calls: List[CallSite] = field(default_factory=list)
    # module path -> {local name -> crate-relative target path}
    uses: Dict[str, Dict[str, str]] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
