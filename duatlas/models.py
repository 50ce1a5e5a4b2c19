from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List

FILE = "file"
DIRECTORY = "directory"

@dataclass(frozen=True)
class SizeEntry:
    path: str
    size: int  # bytes

@dataclass
class CacheRecord:
    root: str
    sizes: Dict[str, int]  # path -> bytes, in scan order
    timestamp: float

    def is_valid(self, now: float, expiry: float) -> bool:
        return now - self.timestamp < expiry

@dataclass
class DirectoryNode:
    name: str
    path: str
    size: int = 0
    type: str = DIRECTORY
    children: List["DirectoryNode"] = field(default_factory=list)

    @property
    def is_dir(self) -> bool:
        return self.type == DIRECTORY

    def to_dict(self) -> dict:
        out = {"name": self.name, "path": self.path, "size": self.size, "type": self.type}
        if self.is_dir:
            out["children"] = [c.to_dict() for c in self.children]
        return out

@dataclass(frozen=True)
class ProgressEvent:
    processed_files: int
    current_path: str
    is_complete: bool = False

# Items yielded by ScanRunner.iter_events()
@dataclass(frozen=True)
class ParsedRecord:
    entry: SizeEntry

@dataclass(frozen=True)
class ProgressTick:
    event: ProgressEvent

@dataclass(frozen=True)
class FileStat:
    is_file: bool
    is_dir: bool
    size: int = 0
