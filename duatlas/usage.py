"""One-level directory materialisation backed by cached ``du`` scans."""
from __future__ import annotations
import logging
import os
import threading
from concurrent.futures import Future
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from .cache import SizeCache
from .errors import ScanError, StatError
from .listing import LocalFilesystem
from .models import DIRECTORY, FILE, DirectoryNode
from .paths import display_name, normalize_path
from .scanner import ProgressCb, ScanRunner

logger = logging.getLogger(__name__)

class DiskUsageService:
    """Builds :class:`DirectoryNode` levels for the UI.

    Owns a :class:`SizeCache`; every directory size it reports comes from the
    deepest cached scan covering the requested path, or from a fresh scan
    rooted exactly at that path. Scan failures never propagate: they degrade
    to zero-sized directories.
    """

    def __init__(self, cache: Optional[SizeCache] = None,
                 runner: Optional[ScanRunner] = None,
                 fs: Optional[LocalFilesystem] = None,
                 include_files: bool = True):
        self.cache = cache if cache is not None else SizeCache()
        self.runner = runner if runner is not None else ScanRunner()
        self.fs = fs if fs is not None else LocalFilesystem()
        self.include_files = include_files
        self._inflight: Dict[str, "Future[Mapping[str, int]]"] = {}
        self._inflight_lock = threading.Lock()

    # -------------------- cache control --------------------
    def clear_cache(self) -> None:
        self.cache.clear()

    def invalidate_cache(self, path: str) -> List[str]:
        return self.cache.invalidate(path)

    # -------------------- scanning --------------------
    def _scan(self, root: str, on_progress: Optional[ProgressCb]) -> Dict[str, int]:
        try:
            return self.runner.run(root, self.include_files, on_progress)
        except ScanError as e:
            if not (e.volume_related and self.include_files):
                logger.warning("Scan of %s failed (%s); directory sizes will read 0", root, e)
                return {}
            logger.warning("Full scan of %s failed (%s); retrying with directories only", root, e)
        try:
            return self.runner.run(root, False, on_progress)
        except ScanError as e:
            logger.warning("Directories-only scan of %s failed (%s); directory sizes will read 0", root, e)
            return {}

    def ensure_mapping(self, root: str, on_progress: Optional[ProgressCb] = None) -> Mapping[str, int]:
        """Size mapping for ``root``, scanning at most once per root at a time."""
        root = normalize_path(root)
        sizes = self.cache.get(root)
        if sizes is not None:
            logger.debug("Using cached sizes for %s", root)
            return sizes

        with self._inflight_lock:
            fut = self._inflight.get(root)
            owner = fut is None
            if owner:
                sizes = self.cache.get(root)
                if sizes is not None:
                    return sizes
                fut = Future()
                self._inflight[root] = fut
        if not owner:
            logger.debug("Joining in-flight scan of %s", root)
            return fut.result()

        try:
            sizes = MappingProxyType(self._scan(root, on_progress))
            # failed scans are not cached so the next request tries again
            if sizes:
                self.cache.put(root, sizes)
            fut.set_result(sizes)
            return sizes
        except BaseException as e:
            fut.set_exception(e)
            raise
        finally:
            with self._inflight_lock:
                self._inflight.pop(root, None)

    def _sizes_for(self, path: str, on_progress: Optional[ProgressCb]) -> Mapping[str, int]:
        root = self.cache.find_covering_root(path)
        if root is not None:
            sizes = self.cache.get(root)
            if sizes is not None:
                logger.debug("Serving %s from cached scan of %s", path, root)
                return sizes
        return self.ensure_mapping(path, on_progress)

    # -------------------- materialisation --------------------
    def get_disk_usage(self, path: str, on_progress: Optional[ProgressCb] = None) -> DirectoryNode:
        """Immediate children of ``path`` with their sizes."""
        path = normalize_path(path)
        node = DirectoryNode(name=display_name(path), path=path, size=0, type=DIRECTORY)
        try:
            st = self.fs.stat(path)
        except StatError as e:
            logger.warning("Cannot access %s: %s", path, e)
            return node
        if not st.is_dir:
            return node

        sizes = self._sizes_for(path, on_progress)

        try:
            names = self.fs.list_entries(path)
        except StatError as e:
            logger.warning("Cannot list %s: %s", path, e)
            return node

        for name in names:
            if name.startswith("."):
                continue
            full = os.path.join(path, name)
            try:
                cst = self.fs.stat(full)
            except StatError as e:
                logger.warning("Skipping %s: %s", full, e)
                continue
            if cst.is_file:
                node.children.append(DirectoryNode(name=name, path=full, size=cst.size, type=FILE))
            elif cst.is_dir:
                # absent from the scan (e.g. unreadable subtree) reads as 0
                size = sizes.get(normalize_path(full), 0)
                node.children.append(DirectoryNode(name=name, path=full, size=size, type=DIRECTORY))

        node.size = sum(c.size for c in node.children)
        return node

    materialize = get_disk_usage
