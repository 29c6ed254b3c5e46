from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import List, Optional

# Never Rust sources of the analysed crate.
PRUNED_DIRS = {"target", ".git", "node_modules", ".cargo"}


def _excluded(rel: str, exclude: List[str]) -> bool:
    return any(fnmatch.fnmatch(rel, pat) for pat in exclude)


def collect_rs_files(paths: List[str], exclude: Optional[List[str]] = None) -> List[Path]:
    """All ``.rs`` files under ``paths``, sorted.

    ``exclude`` holds fnmatch patterns tested against paths relative to each
    root; a matching directory is not descended into.
    """
    exclude = list(exclude or [])
    collected: List[Path] = []
    for root in paths:
        base = Path(root)
        if not base.exists():
            continue
        if base.is_file():
            if base.suffix == ".rs":
                collected.append(base)
            continue
        for dirpath, dirnames, filenames in os.walk(base):
            # prune in place so os.walk skips them
            for d in list(dirnames):
                rel = (Path(dirpath) / d).relative_to(base).as_posix()
                if d in PRUNED_DIRS or _excluded(rel, exclude):
                    dirnames.remove(d)
            for fn in filenames:
                if not fn.endswith(".rs"):
                    continue
                f_path = Path(dirpath) / fn
                if _excluded(f_path.relative_to(base).as_posix(), exclude):
                    continue
                collected.append(f_path)
    return sorted(set(collected))
