"""In-memory store of completed scans keyed by scanned root.

Records expire lazily: validity is checked whenever a record is touched and
stale records are dropped at that point, there is no background sweeper.
"""
from __future__ import annotations
import logging
import threading
import time
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from .models import CacheRecord
from .paths import is_same_or_within, normalize_path, paths_overlap

logger = logging.getLogger(__name__)

DEFAULT_CACHE_EXPIRY = 3600.0  # seconds

class SizeCache:
    def __init__(self, expiry: float = DEFAULT_CACHE_EXPIRY,
                 clock: Callable[[], float] = time.time):
        self.expiry = expiry
        self.clock = clock
        self._records: Dict[str, CacheRecord] = {}
        # scans complete on worker threads
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _valid(self, rec: CacheRecord, now: float) -> bool:
        return rec.is_valid(now, self.expiry)

    def get(self, root: str) -> Optional[Mapping[str, int]]:
        """Read-only view of the sizes scanned under ``root``, or None."""
        root = normalize_path(root)
        with self._lock:
            rec = self._records.get(root)
            if rec is None:
                return None
            if not self._valid(rec, self.clock()):
                logger.debug("Cache expired for %s", root)
                del self._records[root]
                return None
            return MappingProxyType(rec.sizes)

    def put(self, root: str, sizes: Mapping[str, int]) -> None:
        root = normalize_path(root)
        with self._lock:
            self._records[root] = CacheRecord(root=root, sizes=dict(sizes), timestamp=self.clock())
        logger.debug("Cached %d entries for %s", len(sizes), root)

    def find_covering_root(self, path: str) -> Optional[str]:
        """Deepest valid cached root that is ``path`` itself or one of its ancestors."""
        path = normalize_path(path)
        best: Optional[str] = None
        expired: List[str] = []
        with self._lock:
            now = self.clock()
            for root, rec in self._records.items():
                if not self._valid(rec, now):
                    expired.append(root)
                    continue
                if not is_same_or_within(path, root):
                    continue
                # strictly longer only: on a tie the first one seen stays
                if best is None or len(root) > len(best):
                    best = root
            for root in expired:
                del self._records[root]
        return best

    def invalidate(self, target: str) -> List[str]:
        """Drop every record whose root equals, contains or lies inside ``target``."""
        target = normalize_path(target)
        with self._lock:
            removed = [root for root in self._records if paths_overlap(target, root)]
            for root in removed:
                del self._records[root]
        if removed:
            logger.info("Invalidated cached scans for %s: %s", target, ", ".join(removed))
        return removed

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
        logger.info("Size cache cleared")

    def roots(self) -> List[str]:
        with self._lock:
            now = self.clock()
            return [r for r, rec in self._records.items() if self._valid(rec, now)]
