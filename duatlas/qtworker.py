from __future__ import annotations
from typing import Optional

from PySide6.QtCore import QThread, Signal

from .models import ProgressEvent
from .usage import DiskUsageService


class DiskUsageThread(QThread):
    """Materialises one directory level off the GUI thread.

    ``request_id`` travels with every signal so the view can drop events
    from a request it has already navigated away from.
    """

    progress = Signal(str, object)  # request_id, ProgressEvent
    done = Signal(str, object)      # request_id, DirectoryNode
    error = Signal(str, str)        # request_id, message

    def __init__(self, service: DiskUsageService, path: str, request_id: Optional[str] = None):
        super().__init__()
        self.service = service
        self.path = path
        self.request_id = request_id or path

    def run(self):
        try:
            def prog(ev: ProgressEvent):
                self.progress.emit(self.request_id, ev)
            node = self.service.get_disk_usage(self.path, on_progress=prog)
            self.done.emit(self.request_id, node)
        except Exception as e:
            self.error.emit(self.request_id, str(e))
