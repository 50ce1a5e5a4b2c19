"""Tests for the Qt worker thread wrapper."""

from __future__ import annotations

from pathlib import Path

import pytest

QtCore = pytest.importorskip("PySide6.QtCore")

from duatlas.models import DirectoryNode, ProgressEvent  # noqa: E402
from duatlas.qtworker import DiskUsageThread  # noqa: E402
from duatlas.usage import DiskUsageService  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


class ProgressRunner:
    def run(self, root, include_files=True, on_progress=None):
        if on_progress is not None:
            on_progress(ProgressEvent(1, root))
            on_progress(ProgressEvent(1, root, is_complete=True))
        return {}


def test_worker_emits_progress_and_done(qapp, tmp_path: Path) -> None:
    (tmp_path / "f").write_bytes(b"abc")
    thread = DiskUsageThread(DiskUsageService(runner=ProgressRunner()), str(tmp_path), request_id="req-1")
    progress, done, errors = [], [], []
    thread.progress.connect(lambda rid, ev: progress.append((rid, ev)))
    thread.done.connect(lambda rid, node: done.append((rid, node)))
    thread.error.connect(lambda rid, msg: errors.append((rid, msg)))

    thread.run()

    assert [rid for rid, _ in progress] == ["req-1", "req-1"]
    assert progress[-1][1].is_complete
    assert len(done) == 1
    rid, node = done[0]
    assert rid == "req-1"
    assert isinstance(node, DirectoryNode)
    assert node.size == 3
    assert errors == []


class BrokenService:
    def get_disk_usage(self, path, on_progress=None):
        raise RuntimeError("boom")


def test_worker_reports_unexpected_errors(qapp) -> None:
    thread = DiskUsageThread(BrokenService(), "/somewhere")
    errors = []
    thread.error.connect(lambda rid, msg: errors.append((rid, msg)))

    thread.run()

    assert errors == [("/somewhere", "boom")]
