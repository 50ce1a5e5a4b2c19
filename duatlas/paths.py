"""Path normalisation and containment checks shared by the cache and the materializer."""
from __future__ import annotations
import os
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

def normalize_path(path: PathLike) -> str:
    """Absolute form without trailing separators; the filesystem root stays ``os.sep``.

    Idempotent: ``normalize_path(normalize_path(p)) == normalize_path(p)``.
    """
    p = os.path.normpath(os.path.abspath(os.fspath(path)))
    if len(p) == 3 and p[1] == ":":  # C:\
        return p
    stripped = p.rstrip("\\/")
    if not stripped:
        return os.sep
    if len(stripped) == 2 and stripped[1] == ":":
        return stripped + os.sep
    return stripped

def _prefix(root: str) -> str:
    # "/a" must not match "/ab", so compare against "root + sep"
    return root if root.endswith(os.sep) else root + os.sep

def is_same_or_within(path: str, root: str) -> bool:
    """True if normalised ``path`` equals ``root`` or lies beneath it."""
    path = normalize_path(path)
    root = normalize_path(root)
    return path == root or path.startswith(_prefix(root))

def paths_overlap(a: str, b: str) -> bool:
    return is_same_or_within(a, b) or is_same_or_within(b, a)

def display_name(path: str) -> str:
    return os.path.basename(path.rstrip("\\/")) or path
