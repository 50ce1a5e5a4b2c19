from __future__ import annotations
from typing import Optional

class DuAtlasError(Exception):
    pass

class ScanError(DuAtlasError):
    # too much output; the caller may retry with a directories-only scan
    volume_related = False

    def __init__(self, message: str, root: Optional[str] = None):
        super().__init__(message)
        self.root = root

class ScanSpawnError(ScanError):
    pass

class ScanProcessError(ScanError):
    def __init__(self, code: int, root: Optional[str] = None):
        super().__init__(f"scan process exited with code {code}", root=root)
        self.code = code

class ScanTimeoutError(ScanError):
    volume_related = True

    def __init__(self, timeout: float, root: Optional[str] = None):
        super().__init__(f"scan did not finish within {timeout:g}s", root=root)
        self.timeout = timeout

class ScanOverflowError(ScanError):
    volume_related = True

    def __init__(self, limit: int, root: Optional[str] = None):
        super().__init__(f"scan produced more than {limit} records", root=root)
        self.limit = limit

class StatError(DuAtlasError):
    def __init__(self, path: str, message: str = ""):
        super().__init__(message or path)
        self.path = path

class StatNotFoundError(StatError, FileNotFoundError):
    pass

class StatPermissionError(StatError, PermissionError):
    pass

class ProtectedPathError(DuAtlasError, PermissionError):
    def __init__(self, path: str):
        super().__init__(f"refusing to delete protected system path: {path}")
        self.path = path
