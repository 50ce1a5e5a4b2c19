"""Destructive filesystem operations that keep the size cache honest."""
from __future__ import annotations
import logging
import os
import shutil
from typing import Iterable

from .errors import ProtectedPathError, StatError, StatNotFoundError, StatPermissionError
from .paths import is_same_or_within, normalize_path

logger = logging.getLogger(__name__)

PROTECTED_PATHS = ("/", "/System", "/usr", "/bin", "/sbin", "/etc", "/var", "/tmp")

def is_protected_path(path: str, protected: Iterable[str] = PROTECTED_PATHS) -> bool:
    target = normalize_path(path)
    for p in protected:
        p = normalize_path(p)
        # "/" protects only itself, not the whole disk
        if target == p or (p != os.sep and is_same_or_within(target, p)):
            return True
    return False

def delete_path(path: str, service=None, protected: Iterable[str] = PROTECTED_PATHS) -> None:
    """Remove a file or directory tree, then drop cached scans that covered it.

    ``service`` is anything with ``invalidate_cache(path)``, normally a
    :class:`duatlas.usage.DiskUsageService`.
    """
    target = normalize_path(path)
    if is_protected_path(target, protected):
        logger.error("Refused to delete protected path %s", target)
        raise ProtectedPathError(target)
    if not os.path.lexists(target):
        raise StatNotFoundError(target, f"{target}: not found")

    try:
        if os.path.isdir(target) and not os.path.islink(target):
            shutil.rmtree(target)
        else:
            os.remove(target)
    except PermissionError as e:
        raise StatPermissionError(target, f"{target}: permission denied") from e
    except FileNotFoundError as e:
        raise StatNotFoundError(target, f"{target}: not found") from e
    except OSError as e:
        raise StatError(target, f"{target}: {e.strerror or e}") from e
    logger.info("Deleted %s", target)

    if service is not None:
        service.invalidate_cache(target)
