from __future__ import annotations
import logging
import os
import queue
import subprocess
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

import psutil

from .errors import ScanOverflowError, ScanProcessError, ScanSpawnError, ScanTimeoutError
from .models import ParsedRecord, ProgressEvent, ProgressTick, SizeEntry
from .paths import normalize_path

logger = logging.getLogger(__name__)

DU_EXECUTABLE = ("du",)
DEFAULT_SCAN_TIMEOUT = 600.0      # seconds
DEFAULT_PROGRESS_INTERVAL = 1.0   # seconds between progress ticks
DEFAULT_READ_SIZE = 64 * 1024
DEFAULT_QUEUE_CHUNKS = 64         # bounded: a slow consumer stalls the reader, and du with it

ProgressCb = Callable[[ProgressEvent], None]
ScanItem = Union[ParsedRecord, ProgressTick]

def build_scan_command(root: str, include_files: bool,
                       executable: Sequence[str] = DU_EXECUTABLE) -> List[str]:
    # -H: a root that is itself a symlink is followed, like stat/listdir do
    return [*executable, "-H", "-ak" if include_files else "-k", root]

class LineSplitter:
    """Splits a byte stream into complete lines, keeping the unterminated tail."""

    def __init__(self):
        self._buf = b""

    def feed(self, chunk: bytes) -> List[bytes]:
        if not chunk:
            return []
        lines = (self._buf + chunk).split(b"\n")
        self._buf = lines.pop()
        return lines

    def flush(self) -> Optional[bytes]:
        rest, self._buf = self._buf, b""
        return rest or None

def parse_record(line: Union[bytes, str]) -> Optional[SizeEntry]:
    """Parse one ``<kb>\\t<path>`` line. Malformed lines give None."""
    if isinstance(line, bytes):
        line = os.fsdecode(line)
    parts = line.rstrip("\r\n").split("\t", 1)
    if len(parts) < 2 or not parts[1]:
        return None
    kb_text = parts[0].strip()
    if not (kb_text.isascii() and kb_text.isdigit()):
        return None
    kb = int(kb_text)
    return SizeEntry(path=normalize_path(parts[1]), size=kb * 1024)

class ProgressThrottle:
    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self.last_emit = clock()

    def ready(self) -> bool:
        now = self.clock()
        if now - self.last_emit >= self.interval:
            self.last_emit = now
            return True
        return False

def _kill_tree(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    try:
        kids = psutil.Process(proc.pid).children(recursive=True)
    except psutil.Error:
        kids = []
    for k in kids:
        try:
            k.kill()
        except psutil.Error:
            pass
    proc.kill()
    if kids:
        psutil.wait_procs(kids, timeout=5)

def _put(chunks: "queue.Queue[Optional[bytes]]", item: Optional[bytes], stop: threading.Event) -> bool:
    while not stop.is_set():
        try:
            chunks.put(item, timeout=0.1)
            return True
        except queue.Full:
            continue
    return False

class ScanRunner:
    """Runs ``du`` over a subtree and streams its size report.

    Output is consumed chunk by chunk; a reader thread feeds raw bytes into a
    bounded queue and the generator returned by :meth:`iter_events` parses
    them on the caller's thread.
    """

    def __init__(self,
                 executable: Sequence[str] = DU_EXECUTABLE,
                 timeout: float = DEFAULT_SCAN_TIMEOUT,
                 progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
                 max_records: Optional[int] = None,
                 read_size: int = DEFAULT_READ_SIZE,
                 queue_chunks: int = DEFAULT_QUEUE_CHUNKS,
                 clock: Callable[[], float] = time.monotonic):
        self.executable = tuple(executable)
        self.timeout = timeout
        self.progress_interval = progress_interval
        self.max_records = max_records
        self.read_size = read_size
        self.queue_chunks = queue_chunks
        self.clock = clock

    def _pump(self, stream, chunks, stop: threading.Event) -> None:
        try:
            while not stop.is_set():
                data = stream.read(self.read_size)
                if not data:
                    break
                if not _put(chunks, data, stop):
                    return
        except (OSError, ValueError) as e:  # ValueError: stream closed under us
            logger.debug("scan reader stopped: %s", e)
        _put(chunks, None, stop)

    def iter_events(self, root: str, include_files: bool = True) -> Iterator[ScanItem]:
        root = normalize_path(root)
        cmd = build_scan_command(root, include_files, self.executable)
        logger.info("Scanning %s (%s)", root, "files+dirs" if include_files else "dirs only")
        try:
            proc = subprocess.Popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
                                    stderr=subprocess.DEVNULL, bufsize=0)
        except (OSError, ValueError) as e:
            raise ScanSpawnError(f"cannot start {cmd[0]}: {e}", root=root) from e

        chunks: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=self.queue_chunks)
        stop = threading.Event()
        timed_out = threading.Event()

        def on_timeout():
            timed_out.set()
            logger.warning("Scan of %s exceeded %gs, killing pid %s", root, self.timeout, proc.pid)
            _kill_tree(proc)

        timer = threading.Timer(self.timeout, on_timeout)
        timer.name = f"du-timeout-{proc.pid}"
        timer.daemon = True
        reader = threading.Thread(target=self._pump, args=(proc.stdout, chunks, stop),
                                  name=f"du-reader-{proc.pid}", daemon=True)
        timer.start()
        reader.start()

        t0 = time.time()
        splitter = LineSplitter()
        throttle = ProgressThrottle(self.progress_interval, self.clock)
        processed = 0
        last_path = root

        def accept(line: bytes) -> Optional[SizeEntry]:
            nonlocal processed, last_path
            entry = parse_record(line)
            if entry is None:
                return None
            processed += 1
            if self.max_records is not None and processed > self.max_records:
                _kill_tree(proc)
                raise ScanOverflowError(self.max_records, root=root)
            last_path = entry.path
            return entry

        try:
            while True:
                chunk = chunks.get()
                if chunk is None:
                    break
                for line in splitter.feed(chunk):
                    entry = accept(line)
                    if entry is not None:
                        yield ParsedRecord(entry)
                if throttle.ready():
                    yield ProgressTick(ProgressEvent(processed, last_path))

            code = proc.wait()
            if timed_out.is_set():
                raise ScanTimeoutError(self.timeout, root=root)
            if code != 0:
                raise ScanProcessError(code, root=root)

            tail = splitter.flush()
            if tail is not None:
                entry = accept(tail)
                if entry is not None:
                    yield ParsedRecord(entry)
            logger.info("Scan of %s done: %d records in %.1fs", root, processed, time.time() - t0)
            yield ProgressTick(ProgressEvent(processed, last_path, is_complete=True))
        finally:
            timer.cancel()
            timer.join(timeout=10)
            stop.set()
            _kill_tree(proc)
            reader.join(timeout=5)
            if proc.stdout is not None:
                proc.stdout.close()
            proc.wait()

    def run(self, root: str, include_files: bool = True,
            on_progress: Optional[ProgressCb] = None) -> Dict[str, int]:
        """Scan ``root`` and return an ordered ``path -> bytes`` mapping."""
        sizes: Dict[str, int] = {}
        for item in self.iter_events(root, include_files):
            if isinstance(item, ParsedRecord):
                sizes[item.entry.path] = item.entry.size
            elif on_progress is not None:
                on_progress(item.event)
        return sizes
