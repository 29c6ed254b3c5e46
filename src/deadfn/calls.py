"""
Call-site extraction from Rust source.

Detects:
 - direct calls: ``foo()``
 - path calls: ``module::foo()``, ``Type::new()``, ``Self::helper()``,
   ``crate::``/``self::``/``super::`` prefixed paths, turbofish ``foo::<T>()``
 - method calls: ``obj.method()`` (receiver type is not resolved, except that
   ``self.m()`` inside an impl is qualified with the impl's type)
 - calls written inside macro arguments (``assert_eq!(foo(), 1)``), recovered
   from the token tree
Each call is attributed to its lexically enclosing function; closures and
inner blocks stay with the outer function, calls at module scope (static or
const initialisers) go to the module sentinel.

``use`` declarations are collected per module so imported names can be
qualified.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from .module_path import ModulePathBuilder, join_path, split_path
from .node_types import CallExtraction, CallSite, Diagnostic
from .parsing import (
    Source,
    declaration_diagnostic,
    field_text,
    file_diagnostic,
    node_text,
    parse_source,
    raise_on_syntax_error,
    span_of,
)
from .symbols import impl_context

logger = logging.getLogger(__name__)

_PATH_ATOMS = {"identifier", "type_identifier", "self", "super", "crate", "metavariable", "primitive_type"}
_RELATIVE_HEADS = {"crate", "self", "super", "Self"}


def path_segments(node: Optional[Node], data: bytes) -> List[str]:
    """Segments of a (possibly generic or qualified) path node."""
    if node is None:
        return []
    kind = node.type
    if kind in _PATH_ATOMS:
        return [node_text(node, data)]
    if kind in ("scoped_identifier", "scoped_type_identifier"):
        return path_segments(node.child_by_field_name("path"), data) + path_segments(
            node.child_by_field_name("name"), data
        )
    if kind == "generic_type":
        return path_segments(node.child_by_field_name("type"), data)
    if kind == "generic_function":
        return path_segments(node.child_by_field_name("function"), data)
    if kind == "bracketed_type":
        # <T as Trait>::m resolves through the trait, <Foo>::m through the type
        inner = node.named_children[0] if node.named_children else None
        if inner is not None and inner.type == "qualified_type":
            return path_segments(inner.child_by_field_name("alias"), data)
        return path_segments(inner, data)
    return ["".join(node_text(node, data).split())]


class _CallWalker:
    def __init__(self, file: str, data: bytes) -> None:
        self.file = file
        self.data = data
        self.paths = ModulePathBuilder.for_file(file)
        self.calls: List[CallSite] = []
        self.uses: Dict[str, Dict[str, str]] = {}
        self.diagnostics: List[Diagnostic] = []
        self._reported_error = False
        self._uses_only = False

    def run(self, root: Node) -> None:
        # `use` items apply to their whole module, wherever they are written
        self._uses_only = True
        with self.paths.traversal():
            for child in root.named_children:
                self.visit(child)
        self._uses_only = False
        with self.paths.traversal():
            for child in root.named_children:
                self.visit(child)
        if root.has_error and not self._reported_error:
            self.diagnostics.append(file_diagnostic(self.file, root, self.data))

    # --- walk ---
    def visit(self, node: Node) -> None:
        kind = node.type
        if kind == "function_item":
            self._handle_function(node)
            return
        if kind == "mod_item":
            body = node.child_by_field_name("body")
            name = field_text(node, "name", self.data)
            if body is not None and name:
                with self.paths.module(name):
                    for child in body.named_children:
                        self.visit(child)
            return
        if kind in ("impl_item", "trait_item"):
            body = node.child_by_field_name("body")
            if body is not None:
                with self.paths.owner(impl_context(node, self.data)[0]):
                    for child in body.named_children:
                        self.visit(child)
            return
        if kind == "use_declaration":
            if self._uses_only:
                self._handle_use(node)
            return
        if kind == "macro_invocation":
            if self._uses_only:
                return
            for child in node.named_children:
                if child.type == "token_tree":
                    self._scan_token_tree(child)
            return
        if kind in ("foreign_mod_item", "macro_definition", "attribute_item"):
            return
        if kind == "call_expression" and not self._uses_only:
            self._record_call(node)
        for child in node.named_children:
            self.visit(child)

    def _handle_function(self, node: Node) -> None:
        name = field_text(node, "name", self.data)
        if node.has_error or not name:
            if not self._uses_only:
                self.diagnostics.append(declaration_diagnostic(self.file, node, name, self.data))
                self._reported_error = True
            return
        body = node.child_by_field_name("body")
        if body is not None:
            with self.paths.function(name):
                self.visit(body)

    # --- use declarations ---
    def _handle_use(self, node: Node) -> None:
        scope = self.uses.setdefault(self.paths.module_path(), {})
        self._collect_use(node.child_by_field_name("argument"), [], scope)

    def _collect_use(self, node: Optional[Node], prefix: List[str], scope: Dict[str, str]) -> None:
        if node is None:
            return
        kind = node.type
        if kind == "use_as_clause":
            segs = prefix + path_segments(node.child_by_field_name("path"), self.data)
            alias = field_text(node, "alias", self.data)
            if alias and alias != "_":
                self._record_use(alias, segs, scope)
        elif kind == "scoped_use_list":
            base = prefix + path_segments(node.child_by_field_name("path"), self.data)
            self._collect_use(node.child_by_field_name("list"), base, scope)
        elif kind == "use_list":
            for child in node.named_children:
                self._collect_use(child, prefix, scope)
        elif kind == "use_wildcard":
            return
        elif kind == "self" and prefix:
            # use a::b::{self}
            self._record_use(prefix[-1], prefix, scope)
        else:
            segs = prefix + path_segments(node, self.data)
            if segs:
                self._record_use(segs[-1], segs, scope)

    def _record_use(self, local: str, segs: Sequence[str], scope: Dict[str, str]) -> None:
        normalized = self.paths.normalize(segs)
        target = normalized if normalized is not None else tuple(segs)
        if target:
            scope[local] = join_path(target)

    # --- calls ---
    def _qualify(self, segs: List[str]) -> Tuple[Optional[str], Optional[str]]:
        """(path, resolved_path) for a call written with ``segs``."""
        module = self.paths.module_segments()
        imports = self.uses.get(join_path(module), {})
        if len(segs) == 1:
            name = segs[0]
            if name in imports:
                return imports[name], imports[name]
            return None, join_path(module + (name,))
        written = join_path(segs)
        if segs[0] in _RELATIVE_HEADS:
            normalized = self.paths.normalize(segs)
            if normalized is not None:
                return written, join_path(normalized)
            return written, None
        if segs[0] in imports:
            return written, join_path(split_path(imports[segs[0]]) + tuple(segs[1:]))
        return written, join_path(module + tuple(segs))

    def _add_call(self, node: Node, name: str, path: Optional[str], resolved: Optional[str],
                  is_method: bool = False, from_macro: bool = False) -> None:
        self.calls.append(
            CallSite(
                callee_name=name,
                file=self.file,
                span=span_of(node),
                enclosing_symbol=self.paths.enclosing(),
                path=path,
                resolved_path=resolved,
                is_method_call=is_method,
                from_macro=from_macro,
            )
        )

    def _record_call(self, node: Node) -> None:
        func = node.child_by_field_name("function")
        if func is None:
            return
        if func.type == "generic_function":
            func = func.child_by_field_name("function") or func
        if func.type == "field_expression":
            field = func.child_by_field_name("field")
            if field is None or field.type != "field_identifier":
                return
            name = node_text(field, self.data)
            resolved = None
            receiver = func.child_by_field_name("value")
            if receiver is not None and receiver.type == "self":
                owner = self.paths.owner_segments()
                if owner is not None:
                    resolved = join_path(owner + (name,))
            self._add_call(node, name, None, resolved, is_method=True)
            return
        if func.type in ("identifier", "scoped_identifier", "self", "super", "crate"):
            segs = path_segments(func, self.data)
            if not segs:
                return
            path, resolved = self._qualify(segs)
            self._add_call(node, segs[-1], path, resolved)

    def _scan_token_tree(self, tree: Node) -> None:
        toks = tree.children
        for i, tok in enumerate(toks):
            if tok.type == "token_tree":
                self._scan_token_tree(tok)
                if i == 0 or not tok.children or node_text(tok.children[0], self.data) != "(":
                    continue
                prev = toks[i - 1]
                if prev.type != "identifier":
                    continue
                segs = [node_text(prev, self.data)]
                j = i - 1
                while (
                    j >= 2
                    and node_text(toks[j - 1], self.data) == "::"
                    and toks[j - 2].type in _PATH_ATOMS
                ):
                    segs.insert(0, node_text(toks[j - 2], self.data))
                    j -= 2
                is_method = j >= 1 and node_text(toks[j - 1], self.data) == "."
                if is_method:
                    resolved = None
                    if len(segs) == 1 and j >= 2 and toks[j - 2].type == "self":
                        owner = self.paths.owner_segments()
                        if owner is not None:
                            resolved = join_path(owner + (segs[0],))
                    self._add_call(prev, segs[-1], None, resolved, is_method=True, from_macro=True)
                elif j >= 1 and node_text(toks[j - 1], self.data) == "fn":
                    # fn signature inside a macro body
                    continue
                else:
                    path, resolved = self._qualify(segs)
                    self._add_call(prev, segs[-1], path, resolved, from_macro=True)


def extract_calls(file: str, source: Source, strict: bool = False) -> CallExtraction:
    """Extract every call site of one file, plus its ``use`` imports.

    Raises ``ParseError`` in strict mode when the file has any syntax error.
    """
    tree, data = parse_source(source)
    root = tree.root_node
    if strict:
        raise_on_syntax_error(file, root, data)
    walker = _CallWalker(file, data)
    walker.run(root)
    logger.debug("%s: %d call sites", file, len(walker.calls))
    return CallExtraction(calls=walker.calls, uses=walker.uses, diagnostics=walker.diagnostics)
