"""
Function extraction from Rust source.

Records every ``fn`` item of a file:
 - free functions (``fn foo()``), including inside inline ``mod`` blocks
 - inherent and trait-impl methods / associated functions (``impl Foo { fn bar() }``)
 - default method bodies declared in a trait (owner is the trait)
 - functions nested in other function bodies (qualified as ``outer::inner``)

Bodiless trait signatures and ``extern`` block declarations are not recorded.
A declaration containing a syntax error is skipped with a diagnostic; in
strict mode any syntax error fails the whole file.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple

from tree_sitter import Node

from .module_path import ModulePathBuilder
from .node_types import Diagnostic, ExtractionResult, Symbol
from .parsing import (
    Source,
    declaration_diagnostic,
    field_text,
    file_diagnostic,
    node_text,
    parse_source,
    preceding_attributes,
    raise_on_syntax_error,
    span_of,
    visibility_text,
)
from .visibility import classify_visibility

logger = logging.getLogger(__name__)

TEST_ATTRIBUTES = {"test", "bench", "rstest", "test_case", "quickcheck", "proptest"}
FFI_ATTRIBUTES = {"no_mangle", "export_name"}

# (owner type, implemented trait)
ImplContext = Tuple[str, Optional[str]]


def has_test_attribute(attrs: List[str]) -> bool:
    return any(a.split("::")[-1] in TEST_ATTRIBUTES for a in attrs)


def has_ffi_attribute(attrs: List[str]) -> bool:
    return any(a.split("::")[-1] in FFI_ATTRIBUTES for a in attrs)


def type_name(node: Optional[Node], data: bytes) -> str:
    """Readable name of an impl's self type or trait (``Vec<T>`` -> ``Vec``)."""
    if node is None:
        return "<unknown>"
    if node.type in ("type_identifier", "primitive_type", "identifier"):
        return node_text(node, data)
    if node.type in ("scoped_type_identifier", "scoped_identifier"):
        return field_text(node, "name", data) or "<unknown>"
    if node.type in ("generic_type", "reference_type", "pointer_type"):
        return type_name(node.child_by_field_name("type"), data)
    if node.type == "dynamic_type":
        return type_name(node.child_by_field_name("trait"), data)
    return "<unknown>"


def impl_context(node: Node, data: bytes) -> ImplContext:
    """Owner and trait of an ``impl_item`` or ``trait_item``."""
    if node.type == "trait_item":
        name = field_text(node, "name", data) or "<unknown>"
        return name, name
    trait_node = node.child_by_field_name("trait")
    trait = type_name(trait_node, data) if trait_node is not None else None
    return type_name(node.child_by_field_name("type"), data), trait


class _SymbolWalker:
    def __init__(self, file: str, data: bytes) -> None:
        self.file = file
        self.data = data
        self.paths = ModulePathBuilder.for_file(file)
        self.symbols: List[Symbol] = []
        self.diagnostics: List[Diagnostic] = []
        self._seen: Set[str] = set()
        self._reported_error = False

    def run(self, root: Node) -> None:
        with self.paths.traversal():
            for child in root.named_children:
                self.visit(child)
        if root.has_error and not self._reported_error:
            self.diagnostics.append(file_diagnostic(self.file, root, self.data))

    def visit(self, node: Node) -> None:
        kind = node.type
        if kind == "function_item":
            self._handle_function(node, impl=None)
        elif kind == "mod_item":
            body = node.child_by_field_name("body")
            name = field_text(node, "name", self.data)
            if body is not None and name:
                with self.paths.module(name):
                    for child in body.named_children:
                        self.visit(child)
        elif kind in ("impl_item", "trait_item"):
            self._handle_impl(node)
        elif kind in ("foreign_mod_item", "macro_definition", "macro_invocation"):
            return
        else:
            for child in node.named_children:
                self.visit(child)

    def _handle_impl(self, node: Node) -> None:
        body = node.child_by_field_name("body")
        if body is None:
            return
        ctx = impl_context(node, self.data)
        with self.paths.owner(ctx[0]):
            for child in body.named_children:
                if child.type == "function_item":
                    self._handle_function(child, impl=ctx)
                else:
                    self.visit(child)

    def _handle_function(self, node: Node, impl: Optional[ImplContext]) -> None:
        name = field_text(node, "name", self.data)
        if node.has_error or not name:
            diag = declaration_diagnostic(self.file, node, name, self.data)
            logger.debug("%s", diag)
            self.diagnostics.append(diag)
            self._reported_error = True
            return
        full_path = self.paths.full_path(name)
        if full_path in self._seen:
            # e.g. `fmt` from both `impl Display` and `impl Debug` for one type
            logger.debug("%s: duplicate declaration %s kept once", self.file, full_path)
        else:
            self._seen.add(full_path)
            attrs = preceding_attributes(node, self.data)
            self.symbols.append(
                Symbol(
                    name=name,
                    full_path=full_path,
                    visibility=classify_visibility(visibility_text(node, self.data)),
                    file=self.file,
                    span=span_of(node),
                    kind="method" if impl is not None else "function",
                    owner=impl[0] if impl is not None else None,
                    trait_name=impl[1] if impl is not None else None,
                    is_test=has_test_attribute(attrs),
                    is_ffi=has_ffi_attribute(attrs),
                    order=len(self.symbols),
                )
            )
        body = node.child_by_field_name("body")
        if body is not None:
            with self.paths.function(name):
                self.visit(body)


def extract_symbols(file: str, source: Source, strict: bool = False) -> ExtractionResult:
    """Extract every function declared in one file.

    Raises ``ParseError`` in strict mode when the file has any syntax error.
    """
    tree, data = parse_source(source)
    root = tree.root_node
    if strict:
        raise_on_syntax_error(file, root, data)
    walker = _SymbolWalker(file, data)
    walker.run(root)
    return ExtractionResult(symbols=walker.symbols, diagnostics=walker.diagnostics)
