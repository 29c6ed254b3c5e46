"""
Function-level call graph and reachability.

Build order:
 1. index every symbol by simple name and by full path (a list per path, equal
    paths in different files are distinct nodes), plus the ``use`` alias map
    ``module::local -> target``;
 2. resolve each call site to zero, one or several symbols:
      qualified: exact path (caller's file first) -> alias chain -> ``::`` suffix
      then by name: unique in the caller's file -> unique project-wide -> fan out
 3. add edges for every resolved call, dead callers included;
 4. roots from ``RootPolicy`` plus callees of module-scope calls;
 5. reachable = closure of the roots, dead = the rest minus ignored symbols.

Receiver types are never inferred: ``x.len()`` links to every project method
named ``len``. Over-approximation keeps symbols alive, it never kills one.
"""
from __future__ import annotations

import fnmatch
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .graph_traversal import GraphTraversal
from .module_path import is_module_sentinel, join_path, split_path
from .node_types import CallSite, Diagnostic, Symbol, SymbolKey
from .visibility import Visibility

logger = logging.getLogger(__name__)

# Crates that are never part of the analysed tree.
EXTERNAL_ROOTS = {"std", "core", "alloc"}
ALIAS_HOPS = 10
_RELATIVE_HEADS = {"crate", "self", "super", "Self"}


@dataclass
class RootPolicy:
    """Which symbols count as entry points."""

    root_visibilities: Set[Visibility] = field(default_factory=lambda: {Visibility.PUBLIC})
    entry_names: Set[str] = field(default_factory=lambda: {"main"})
    include_tests: bool = True
    include_ffi: bool = True
    include_trait_impls: bool = True
    keep_alive: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)

    def kept_alive(self, sym: Symbol) -> bool:
        for pat in self.keep_alive:
            if sym.full_path == pat or sym.full_path.endswith("::" + pat):
                return True
            if fnmatch.fnmatchcase(sym.full_path, pat):
                return True
        return False

    def is_root(self, sym: Symbol) -> bool:
        if sym.visibility in self.root_visibilities:
            return True
        if sym.name in self.entry_names:
            return True
        if self.include_tests and sym.is_test:
            return True
        if self.include_ffi and sym.is_ffi:
            return True
        if self.include_trait_impls and sym.trait_name is not None:
            return True
        return self.kept_alive(sym)

    def is_ignored(self, sym: Symbol) -> bool:
        return any(fnmatch.fnmatchcase(sym.full_path, pat) for pat in self.ignore)


@dataclass
class FuncStats:
    total_symbols: int = 0
    reachable_count: int = 0
    dead_count: int = 0
    ignored_count: int = 0
    public_dead: int = 0
    private_dead: int = 0
    by_visibility: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: {v.value: {"total": 0, "dead": 0} for v in Visibility}
    )
    edge_count: int = 0
    unresolved_calls: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_symbols": self.total_symbols,
            "reachable_count": self.reachable_count,
            "dead_count": self.dead_count,
            "ignored_count": self.ignored_count,
            "public_dead": self.public_dead,
            "private_dead": self.private_dead,
            "by_visibility": {k: dict(v) for k, v in self.by_visibility.items()},
            "edge_count": self.edge_count,
            "unresolved_calls": self.unresolved_calls,
        }


@dataclass
class FuncAnalysisResult:
    dead: List[Symbol] = field(default_factory=list)
    reachable: Set[SymbolKey] = field(default_factory=set)
    roots: Set[SymbolKey] = field(default_factory=set)
    stats: FuncStats = field(default_factory=FuncStats)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    graph: Optional["FuncGraph"] = None

    def dead_entries(self) -> List[Tuple[str, str]]:
        return [(s.full_path, s.file) for s in self.dead]


class FuncGraph(GraphTraversal[SymbolKey]):
    """Whole-program call graph over symbol keys."""

    def __init__(self) -> None:
        self.symbols: Dict[SymbolKey, Symbol] = {}
        self.edges: Dict[SymbolKey, Set[SymbolKey]] = {}
        self.by_name: Dict[str, List[SymbolKey]] = {}
        self.by_path: Dict[str, List[SymbolKey]] = {}
        # last two path segments -> keys, for `Type::method` style lookups
        self.by_tail: Dict[str, List[SymbolKey]] = {}
        self.aliases: Dict[str, str] = {}
        # every call site with the keys it was linked to (several on fan-out)
        self.resolutions: List[Tuple[CallSite, List[SymbolKey]]] = []
        self.unresolved: List[CallSite] = []
        self.external: List[CallSite] = []
        self.module_roots: Set[SymbolKey] = set()
        self._file_rank: Dict[str, int] = {}

    # --- GraphTraversal ---
    def neighbors(self, node: SymbolKey) -> Iterable[SymbolKey]:
        return self.edges.get(node, ())

    def contains_node(self, node: SymbolKey) -> bool:
        return node in self.symbols

    # --- construction ---
    @classmethod
    def build(
        cls,
        symbols: Iterable[Symbol],
        calls: Iterable[CallSite],
        uses: Optional[Mapping[str, Mapping[str, str]]] = None,
    ) -> "FuncGraph":
        graph = cls()
        for sym in symbols:
            graph._add_symbol(sym)
        for module, imports in (uses or {}).items():
            for local, target in imports.items():
                key = join_path(split_path(module) + (local,))
                if key != target:
                    graph.aliases[key] = target
        for call in calls:
            graph._link(call)
        logger.debug(
            "call graph: %d functions, %d edges, %d unresolved calls",
            graph.function_count(),
            graph.edge_count(),
            len(graph.unresolved),
        )
        return graph

    def _add_symbol(self, sym: Symbol) -> None:
        key = sym.key
        if key in self.symbols:
            return
        self.symbols[key] = sym
        self._file_rank.setdefault(sym.file, len(self._file_rank))
        self.by_name.setdefault(sym.name, []).append(key)
        self.by_path.setdefault(sym.full_path, []).append(key)
        segs = split_path(sym.full_path)
        if len(segs) >= 2:
            self.by_tail.setdefault(join_path(segs[-2:]), []).append(key)

    def add_edge(self, src: SymbolKey, dst: SymbolKey) -> None:
        self.edges.setdefault(src, set()).add(dst)

    def _link(self, call: CallSite) -> None:
        targets = self.resolve(call)
        if targets is None:
            self.external.append(call)
            return
        if not targets:
            logger.debug("unresolved call %s at %s:%s", call.path or call.callee_name, call.file, call.span)
            self.unresolved.append(call)
            return
        self.resolutions.append((call, targets))
        if is_module_sentinel(call.enclosing_symbol):
            self.module_roots.update(targets)
            return
        caller = (call.file, call.enclosing_symbol)
        if caller not in self.symbols:
            logger.debug("call from unknown function %s in %s dropped", call.enclosing_symbol, call.file)
            return
        for dst in targets:
            self.add_edge(caller, dst)

    # --- resolution ---
    def _exact(self, path: str, file: str) -> List[SymbolKey]:
        keys = self.by_path.get(path, [])
        same = [k for k in keys if k[0] == file]
        return same or list(keys)

    def _follow_alias(self, path: str) -> str:
        """Expand ``use`` re-exports, longest aliased prefix first."""
        segs = split_path(path)
        for i in range(len(segs), 0, -1):
            head = join_path(segs[:i])
            cur = head
            hops = 0
            while cur in self.aliases and hops < ALIAS_HOPS:
                nxt = self.aliases[cur]
                if not nxt or nxt == cur:
                    break
                cur = nxt
                hops += 1
            if cur != head:
                return join_path(split_path(cur) + segs[i:])
        return path

    def _suffix(self, written: str, file: str) -> List[SymbolKey]:
        keys = list(self.by_tail.get(written, []))
        same = [k for k in keys if k[0] == file]
        return same or keys

    def _lexical(self, call: CallSite) -> List[SymbolKey]:
        """A function nested in one of the caller's enclosing function bodies, innermost first."""
        scopes = split_path(call.enclosing_symbol)
        for i in range(len(scopes), 0, -1):
            if (call.file, join_path(scopes[:i])) not in self.symbols:
                continue
            key = (call.file, join_path(scopes[:i] + (call.callee_name,)))
            if key in self.symbols and not self.symbols[key].is_method:
                return [key]
        return []

    def _by_name(self, call: CallSite) -> List[SymbolKey]:
        keys = self.by_name.get(call.callee_name, [])
        if call.is_method_call:
            # only functions taking a receiver can be called with `.`
            methods = [k for k in keys if self.symbols[k].is_method]
            keys = methods or keys
        elif call.path is None:
            free = [k for k in keys if not self.symbols[k].is_method]
            keys = free or keys
        return keys

    def resolve(self, call: CallSite) -> Optional[List[SymbolKey]]:
        """Target keys of ``call``; ``[]`` if unresolved, ``None`` if it leaves the project."""
        if call.path is None and not call.is_method_call and not is_module_sentinel(call.enclosing_symbol):
            found = self._lexical(call)
            if found:
                return found
        if call.resolved_path:
            found = self._exact(call.resolved_path, call.file)
            if found:
                return found
            expanded = self._follow_alias(call.resolved_path)
            if expanded != call.resolved_path:
                found = self._exact(expanded, call.file)
                if found:
                    return found
            if call.path is not None:
                written = split_path(expanded)
                if written and written[0] in EXTERNAL_ROOTS:
                    return None
                if split_path(call.path)[0] in EXTERNAL_ROOTS:
                    return None
                tail = [s for s in split_path(call.path) if s not in _RELATIVE_HEADS][-2:]
                found = self._suffix(join_path(tail), call.file) if len(tail) == 2 else []
                if found:
                    return found
        keys = self._by_name(call)
        if not keys:
            return []
        same_file = [k for k in keys if k[0] == call.file]
        if len(same_file) == 1:
            return same_file
        if len(keys) == 1:
            return list(keys)
        logger.debug("%s: %s fans out to %d candidates", call.file, call.callee_name, len(keys))
        return list(keys)

    # --- queries ---
    def function_count(self) -> int:
        return len(self.symbols)

    def edge_count(self) -> int:
        return sum(len(v) for v in self.edges.values())

    def callers_of(self, key: SymbolKey) -> List[SymbolKey]:
        return sorted(src for src, dsts in self.edges.items() if key in dsts)

    def roots(self, policy: Optional[RootPolicy] = None) -> Set[SymbolKey]:
        policy = policy or RootPolicy()
        roots = {key for key, sym in self.symbols.items() if policy.is_root(sym)}
        return roots | (self.module_roots & set(self.symbols))

    def find(self, target: str) -> List[SymbolKey]:
        """Keys whose full path is ``target`` or ends with ``::target``."""
        exact = self.by_path.get(target)
        if exact:
            return list(exact)
        return [k for k in self.symbols if k[1].endswith("::" + target)]

    def explain(self, target: str, policy: Optional[RootPolicy] = None) -> Optional[List[str]]:
        """Root -> target chain of full paths, or None when the target is dead or unknown."""
        roots = self.roots(policy)
        for key in self.find(target):
            chain = self.explain_path(sorted(roots), key)
            if chain is not None:
                return [k[1] for k in chain]
        return None

    def max_call_depth(
        self, policy: Optional[RootPolicy] = None, roots: Optional[Iterable[SymbolKey]] = None
    ) -> int:
        """Largest BFS distance from the root set to any reachable function."""
        dist: Dict[SymbolKey, int] = {}
        q: deque = deque()
        for r in roots if roots is not None else self.roots(policy):
            dist[r] = 0
            q.append(r)
        while q:
            node = q.popleft()
            for nxt in self.neighbors(node):
                if nxt not in dist:
                    dist[nxt] = dist[node] + 1
                    q.append(nxt)
        return max(dist.values(), default=0)

    def _ordered(self, keys: Iterable[SymbolKey]) -> List[Symbol]:
        syms = [self.symbols[k] for k in keys]
        syms.sort(key=lambda s: (self._file_rank[s.file], s.order, s.full_path))
        return syms

    def analyze(self, policy: Optional[RootPolicy] = None) -> FuncAnalysisResult:
        policy = policy or RootPolicy()
        roots = self.roots(policy)
        reachable = self.reachable_from(roots)

        stats = FuncStats(
            total_symbols=len(self.symbols),
            reachable_count=len(reachable),
            edge_count=self.edge_count(),
            unresolved_calls=len(self.unresolved),
        )
        dead_keys: List[SymbolKey] = []
        for key, sym in self.symbols.items():
            bucket = stats.by_visibility[sym.visibility.value]
            bucket["total"] += 1
            if key in reachable:
                continue
            if policy.is_ignored(sym):
                stats.ignored_count += 1
                continue
            bucket["dead"] += 1
            dead_keys.append(key)
            if sym.visibility.is_public:
                stats.public_dead += 1
            else:
                stats.private_dead += 1
        stats.dead_count = len(dead_keys)

        return FuncAnalysisResult(
            dead=self._ordered(dead_keys),
            reachable=reachable,
            roots=roots,
            stats=stats,
            graph=self,
        )

    def to_dict(self, result: Optional[FuncAnalysisResult] = None) -> Dict[str, Any]:
        """Nodes, edges and stats of the graph; liveness comes from ``result`` or a fresh analysis."""
        result = result or self.analyze()
        dead = {s.key for s in result.dead}

        def node_id(key: SymbolKey) -> str:
            return f"{key[0]}::{key[1]}"

        nodes = []
        for sym in self._ordered(self.symbols):
            nodes.append(
                {
                    "id": node_id(sym.key),
                    "name": sym.name,
                    "full_path": sym.full_path,
                    "file": sym.file,
                    "line": sym.span.start_line,
                    "visibility": sym.visibility.value,
                    "is_method": sym.is_method,
                    "is_root": sym.key in result.roots,
                    "is_dead": sym.key in dead,
                }
            )
        edges = [
            {"from": node_id(src), "to": node_id(dst)}
            for src in sorted(self.edges)
            for dst in sorted(self.edges[src])
        ]
        return {
            "nodes": nodes,
            "edges": edges,
            "stats": dict(result.stats.to_dict(), max_call_depth=self.max_call_depth(roots=result.roots)),
        }
