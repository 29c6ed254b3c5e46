"""
Visibility classification for Rust declarations.

Maps the text of a visibility modifier (``pub``, ``pub(crate)``,
``pub(in some::path)`` ...) to one of five fixed categories.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class Visibility(str, Enum):
    PUBLIC = "public"
    CRATE = "crate-visible"
    SUPER = "parent-visible"
    RESTRICTED = "restricted-path"
    PRIVATE = "private"

    @property
    def label(self) -> str:
        """Rust spelling used in reports."""
        return _LABELS[self]

    @property
    def is_public(self) -> bool:
        return self is Visibility.PUBLIC


_LABELS = {
    Visibility.PUBLIC: "pub",
    Visibility.CRATE: "pub(crate)",
    Visibility.SUPER: "pub(super)",
    Visibility.RESTRICTED: "pub(restricted)",
    Visibility.PRIVATE: "private",
}


def classify_visibility(annotation: Optional[str]) -> Visibility:
    """Classify a visibility modifier.

    ``None`` or empty text means the item had no modifier (inherited, private).
    ``pub(self)`` restricts to the current module and is therefore private.
    Anything restricted to a path other than ``crate``/``super``/``self`` is
    ``RESTRICTED``.
    """
    if not annotation:
        return Visibility.PRIVATE
    text = "".join(annotation.split())
    if text == "pub":
        return Visibility.PUBLIC
    if not text.startswith("pub("):
        # `crate` alone is an old macro-only spelling of pub(crate)
        if text == "crate":
            return Visibility.CRATE
        return Visibility.PRIVATE
    inner = text[len("pub("):].rstrip(")")
    if inner.startswith("in") and inner not in {"crate", "super", "self"}:
        inner = inner[2:]
    if inner == "crate":
        return Visibility.CRATE
    if inner == "super":
        return Visibility.SUPER
    if inner == "self":
        return Visibility.PRIVATE
    return Visibility.RESTRICTED
