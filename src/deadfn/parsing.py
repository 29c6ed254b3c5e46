"""
Rust parsing front end built on tree-sitter.

The grammar object is loaded once and shared (read-only); every call to
``parse_source`` creates its own ``Parser`` so per-file extraction can run in
worker threads without sharing mutable parser state.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional, Tuple, Union

import tree_sitter_rust
from tree_sitter import Language, Node, Parser, Tree

from .errors import ParseError
from .node_types import Diagnostic, Span

logger = logging.getLogger(__name__)

Source = Union[str, bytes]

# Nodes that may sit between an attribute and the item it decorates.
_TRIVIA = {"line_comment", "block_comment"}


@lru_cache(maxsize=1)
def rust_language() -> Language:
    return Language(tree_sitter_rust.language())


def parse_source(source: Source) -> Tuple[Tree, bytes]:
    data = source.encode("utf-8") if isinstance(source, str) else source
    parser = Parser(rust_language())
    return parser.parse(data), data


def node_text(node: Node, data: bytes) -> str:
    return data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def span_of(node: Node) -> Span:
    (sr, sc), (er, ec) = node.start_point, node.end_point
    return Span(start_line=sr + 1, start_col=sc + 1, end_line=er + 1, end_col=ec + 1)


def field_text(node: Node, field_name: str, data: bytes) -> Optional[str]:
    child = node.child_by_field_name(field_name)
    return node_text(child, data) if child is not None else None


def visibility_text(node: Node, data: bytes) -> Optional[str]:
    for child in node.children:
        if child.type == "visibility_modifier":
            return node_text(child, data)
    return None


def _attribute_path(attr_item: Node, data: bytes) -> Optional[str]:
    attr = next((c for c in attr_item.named_children if c.type == "attribute"), None)
    if attr is None or not attr.named_children:
        return None
    head = attr.named_children[0]
    path = "".join(node_text(head, data).split())
    # #[unsafe(no_mangle)] wraps the real attribute in a token tree
    if path == "unsafe" and len(attr.named_children) > 1:
        for tok in attr.named_children[1].named_children:
            if tok.type == "identifier":
                return node_text(tok, data)
    return path


def preceding_attributes(node: Node, data: bytes) -> List[str]:
    """Paths of the outer attributes written directly before ``node``.

    ``#[test]`` -> "test", ``#[tokio::test(flavor = "x")]`` -> "tokio::test".
    """
    paths: List[str] = []
    sib = node.prev_sibling
    while sib is not None and (sib.type == "attribute_item" or sib.type in _TRIVIA):
        if sib.type == "attribute_item":
            path = _attribute_path(sib, data)
            if path:
                paths.append(path)
        sib = sib.prev_sibling
    paths.reverse()
    return paths


def first_error(node: Node) -> Optional[Node]:
    """The first ERROR or missing node under ``node`` (document order)."""
    if not node.has_error:
        return None
    stack = [node]
    while stack:
        cur = stack.pop()
        if cur.type == "ERROR" or cur.is_missing:
            return cur
        if cur.has_error:
            stack.extend(reversed(cur.children))
    return None


def error_location(node: Node) -> Tuple[Optional[int], Optional[int]]:
    err = first_error(node)
    if err is None:
        return None, None
    row, col = err.start_point
    return row + 1, col + 1


def error_message(node: Node, data: bytes) -> str:
    err = first_error(node)
    if err is None:
        return "syntax error"
    if err.is_missing:
        return f"missing `{err.type}`"
    snippet = node_text(err, data).strip().splitlines()
    return f"unexpected `{snippet[0][:40]}`" if snippet else "syntax error"


def declaration_diagnostic(file: str, node: Node, name: Optional[str], data: bytes) -> Diagnostic:
    line, _col = error_location(node)
    label = f"`{name}`" if name else "function"
    return Diagnostic(file, f"skipped {label}: {error_message(node, data)}", line)


def file_diagnostic(file: str, root: Node, data: bytes) -> Diagnostic:
    line, _col = error_location(root)
    return Diagnostic(file, f"syntax error outside any function: {error_message(root, data)}", line)


def raise_on_syntax_error(file: str, root: Node, data: bytes) -> None:
    """Strict mode: any syntax error fails the whole file."""
    if root.has_error:
        line, col = error_location(root)
        raise ParseError(file, error_message(root, data), line, col)
