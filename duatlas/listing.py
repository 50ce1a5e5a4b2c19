from __future__ import annotations
import errno
import os
import stat as statmod
from typing import List

from .errors import StatError, StatNotFoundError, StatPermissionError
from .models import FileStat

def _stat_error(path: str, e: OSError) -> StatError:
    if isinstance(e, FileNotFoundError) or e.errno in (errno.ENOENT, errno.ENOTDIR):
        return StatNotFoundError(path, f"{path}: not found")
    if isinstance(e, PermissionError):
        return StatPermissionError(path, f"{path}: permission denied")
    return StatError(path, f"{path}: {e.strerror or e}")

class LocalFilesystem:
    """Plain stat/listdir access to the local disk."""

    def stat(self, path: str) -> FileStat:
        try:
            st = os.stat(path)
        except OSError as e:
            raise _stat_error(path, e) from e
        mode = st.st_mode
        return FileStat(is_file=statmod.S_ISREG(mode),
                        is_dir=statmod.S_ISDIR(mode),
                        size=int(getattr(st, "st_size", 0) or 0))

    def list_entries(self, path: str) -> List[str]:
        try:
            return sorted(os.listdir(path))
        except OSError as e:
            raise _stat_error(path, e) from e
