"""
Module path construction for Rust sources.

Two pieces:
 - ``module_segments_for_file``: where a file sits in its crate's module tree,
   derived from its location (``src/api/v1/handler.rs`` -> ``api::v1::handler``).
 - ``ModulePathBuilder``: an explicit scope stack threaded through one file's
   syntax walk. Inline ``mod`` blocks, ``impl`` owners and enclosing functions
   are pushed on entry and popped on exit, so every declaration and call site
   can be qualified without any state shared between files or threads.

Paths are crate-relative and joined with ``::``; the ``crate`` prefix is
never included (``crate::api::load`` is stored as ``api::load``).
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import PurePosixPath
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import ScopeError

SEP = "::"
MODULE_SENTINEL = "<module>"

# Files that stand for their parent directory's module (or the crate root).
_DIR_MODULE_FILES = {"lib.rs", "main.rs", "mod.rs"}
# Directories whose direct children are separate crate roots.
_CRATE_ROOT_DIRS = {"bin", "tests", "examples", "benches"}

_MODULE = "module"
_OWNER = "owner"
_FUNCTION = "function"


def join_path(segments: Sequence[str]) -> str:
    return SEP.join(s for s in segments if s)


def split_path(path: str) -> Tuple[str, ...]:
    return tuple(s for s in path.split(SEP) if s)


def module_segments_for_file(file: str) -> Tuple[str, ...]:
    """Module segments of a file relative to its crate root.

    Examples:
      src/lib.rs              -> ()
      src/api/mod.rs          -> ("api",)
      src/api/v1/handler.rs   -> ("api", "v1", "handler")
      src/bin/tool.rs         -> ()          (binary crate root)
      src/bin/tool/cli.rs     -> ("cli",)
      tests/integration.rs    -> ()          (integration test crate)
    """
    parts = [p for p in PurePosixPath(file.replace("\\", "/")).parts if p not in ("/", ".", "..")]
    if not parts:
        return ()
    if "src" in parts:
        idx = len(parts) - 1 - parts[::-1].index("src")
        rel = parts[idx + 1:]
    else:
        rel = parts
        # tests/foo.rs, examples/foo.rs ... outside src are crate roots too
        for i, p in enumerate(parts[:-1]):
            if p in _CRATE_ROOT_DIRS:
                rel = parts[i:]
                break
    if not rel:
        return ()
    if rel[0] in _CRATE_ROOT_DIRS and len(rel) >= 2:
        if len(rel) == 2:
            return ()
        # bin/<name>/main.rs is the root, siblings are its modules
        rel = rel[2:]
    *dirs, last = rel
    if last in _DIR_MODULE_FILES:
        return tuple(dirs)
    stem = last[:-3] if last.endswith(".rs") else last
    return tuple(dirs) + (stem,)


class ModulePathBuilder:
    """Scope stack for qualifying declarations during one file's walk."""

    def __init__(self, base: Sequence[str] = ()) -> None:
        self._base: Tuple[str, ...] = tuple(base)
        self._frames: List[Tuple[str, str]] = []
        self._active = False

    @classmethod
    def for_file(cls, file: str) -> "ModulePathBuilder":
        return cls(module_segments_for_file(file))

    # --- traversal lifecycle ---
    def begin(self) -> None:
        self._frames = []
        self._active = True

    def end(self) -> None:
        self._require_active()
        if self._frames:
            raise ScopeError(f"traversal ended with open scopes: {self._frames!r}")
        self._active = False

    @contextmanager
    def traversal(self) -> Iterator["ModulePathBuilder"]:
        self.begin()
        try:
            yield self
        finally:
            # leave the builder inactive even if the walk raised
            self._frames = []
            self._active = False

    @property
    def active(self) -> bool:
        return self._active

    # --- scope push/pop ---
    def _push(self, kind: str, name: str) -> None:
        self._require_active()
        self._frames.append((kind, name))

    def _pop(self, kind: str) -> None:
        self._require_active()
        if not self._frames or self._frames[-1][0] != kind:
            raise ScopeError(f"cannot leave {kind} scope: stack is {self._frames!r}")
        self._frames.pop()

    def enter_module(self, name: str) -> None:
        self._push(_MODULE, name)

    def leave_module(self) -> None:
        self._pop(_MODULE)

    def enter_owner(self, type_name: str) -> None:
        self._push(_OWNER, type_name)

    def leave_owner(self) -> None:
        self._pop(_OWNER)

    def enter_function(self, name: str) -> None:
        self._push(_FUNCTION, name)

    def leave_function(self) -> None:
        self._pop(_FUNCTION)

    @contextmanager
    def module(self, name: str) -> Iterator[None]:
        self.enter_module(name)
        try:
            yield
        finally:
            self.leave_module()

    @contextmanager
    def owner(self, type_name: str) -> Iterator[None]:
        self.enter_owner(type_name)
        try:
            yield
        finally:
            self.leave_owner()

    @contextmanager
    def function(self, name: str) -> Iterator[None]:
        self.enter_function(name)
        try:
            yield
        finally:
            self.leave_function()

    # --- queries ---
    def _require_active(self) -> None:
        if not self._active:
            raise ScopeError("module path requested outside an active traversal")

    def module_segments(self) -> Tuple[str, ...]:
        self._require_active()
        return self._base + tuple(name for kind, name in self._frames if kind == _MODULE)

    def module_path(self) -> str:
        return join_path(self.module_segments())

    def current_owner(self) -> Optional[str]:
        self._require_active()
        for kind, name in reversed(self._frames):
            if kind == _OWNER:
                return name
        return None

    def in_function(self) -> bool:
        self._require_active()
        return any(kind == _FUNCTION for kind, _ in self._frames)

    def full_path(self, name: str) -> str:
        """Qualified path for a declaration named ``name`` at the current position."""
        self._require_active()
        return join_path(self._base + tuple(n for _, n in self._frames) + (name,))

    def enclosing(self) -> str:
        """Path of the innermost enclosing function, or the module sentinel."""
        self._require_active()
        for i in range(len(self._frames) - 1, -1, -1):
            if self._frames[i][0] == _FUNCTION:
                return join_path(self._base + tuple(n for _, n in self._frames[: i + 1]))
        return join_path(self.module_segments() + (MODULE_SENTINEL,))

    def owner_segments(self) -> Optional[Tuple[str, ...]]:
        """Path of the innermost ``impl`` owner, used to expand ``Self``."""
        self._require_active()
        for i in range(len(self._frames) - 1, -1, -1):
            if self._frames[i][0] == _OWNER:
                return self._base + tuple(n for _, n in self._frames[: i + 1])
        return None

    def normalize(self, segments: Sequence[str]) -> Optional[Tuple[str, ...]]:
        """Rewrite a ``crate``/``self``/``super``/``Self`` prefixed path to a crate-relative one.

        Returns ``None`` when the path has none of those prefixes.
        """
        segs = list(segments)
        if not segs:
            return None
        head = segs[0]
        if head == "crate":
            return tuple(segs[1:])
        if head == "self":
            return self.module_segments() + tuple(segs[1:])
        if head == "super":
            mod = list(self.module_segments())
            while segs and segs[0] == "super":
                segs.pop(0)
                if mod:
                    mod.pop()
            return tuple(mod) + tuple(segs)
        if head == "Self":
            owner = self.owner_segments()
            if owner is None:
                return None
            return owner + tuple(segs[1:])
        return None


def is_module_sentinel(path: str) -> bool:
    return path == MODULE_SENTINEL or path.endswith(SEP + MODULE_SENTINEL)
