"""
Exception hierarchy for deadfn.

Library callers can match on these instead of parsing messages. Parse failures
are only raised in strict mode; in the default mode they become diagnostics.
"""
from __future__ import annotations

from typing import Optional


class DeadfnError(Exception):
    """Base class for every error raised by deadfn."""


class ParseError(DeadfnError):
    def __init__(
        self,
        path: str,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.path = path
        self.message = message
        self.line = line
        self.column = column
        where = path if line is None else f"{path}:{line}:{column or 0}"
        super().__init__(f"Parse error in {where}: {message}")


class ConfigError(DeadfnError):
    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Config error at {path}: {message}")


class ScopeError(DeadfnError):
    """A module path was requested outside an active traversal, or a scope was popped twice."""
