from __future__ import annotations
import math
import time
from typing import Callable, Optional

from .models import ProgressEvent
from .utils import clamp

FILE_PART_CAP = 70.0
ESTIMATE_CAP = 95.0

class ProgressEstimator:
    """Rough 0-95% completion guess for a running scan.

    du gives no total up front, so this blends a log scale of the record
    count with elapsed time: half way after 30s, then creeping to 90% over
    the next minute. Display only.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.started_at: Optional[float] = None
        self.last_value = 0.0

    def start(self) -> None:
        self.started_at = self.clock()
        self.last_value = 0.0

    def reset(self) -> None:
        self.started_at = None
        self.last_value = 0.0

    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, self.clock() - self.started_at)

    def update(self, event: ProgressEvent) -> float:
        if event.is_complete:
            self.reset()
            return 100.0
        if self.started_at is None:
            self.start()

        file_part = min(FILE_PART_CAP, math.log10(max(1, event.processed_files)) * 15)
        t = self.elapsed()
        if t <= 30:
            time_part = t / 30 * 50
        else:
            time_part = 50 + min(40.0, (t - 30) / 60 * 40)

        value = clamp(max(file_part, time_part), 0.0, ESTIMATE_CAP)
        self.last_value = max(self.last_value, value)
        return self.last_value
