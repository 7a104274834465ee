"""
Turn the separation tool's free-form console output into ProgressEvents.

The tool prints one tqdm-style percentage counter (e.g. "100%|██████████| 150/150 [00:30<00:00]").
We assume that counter runs 0-100 once and is split evenly across the expected stages, so
stage = floor(p / (100 / stage_count)). This is an approximation: when stages take unequal
time, progress is attributed to the wrong stage.
"""

import re
from collections.abc import Sequence
from typing import Protocol

from stemsplit.models import ProgressEvent

PERCENT_PATTERN = re.compile(r"(\d+)%")
INFO_MARKERS = ("Separating",)


class ProgressStrategy(Protocol):
    """How to read one console line. Swap this out for tool versions with a different format."""

    def percent(self, line: str) -> int | None: ...

    def is_info(self, line: str) -> bool: ...


class PercentStageStrategy:
    """Default: first '<digits>%' token is overall progress; marker words are info lines."""

    def __init__(self, pattern: re.Pattern = PERCENT_PATTERN, info_markers: Sequence[str] = INFO_MARKERS):
        self.pattern = pattern
        self.info_markers = tuple(info_markers)

    def percent(self, line: str) -> int | None:
        m = self.pattern.search(line)
        if not m:
            return None
        return min(int(m.group(1)), 100)

    def is_info(self, line: str) -> bool:
        return any(marker in line for marker in self.info_markers)


class ProgressParser:
    """
    Stateful line interpreter: Idle until the first percentage, then tracking one stage index.
    feed() returns the events for one line; finish() closes out the tracked stage.
    """

    def __init__(self, stages: Sequence[str], strategy: ProgressStrategy | None = None):
        if not stages:
            raise ValueError("stages must not be empty")
        self.stages = list(stages)
        self.strategy = strategy or PercentStageStrategy()
        self.current_index: int | None = None

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    def estimate_stage(self, percent: int) -> int:
        """floor(p / (100 / n)) clamped to [0, n-1]. Integer math avoids float edge errors at boundaries."""
        n = self.stage_count
        return max(0, min(percent * n // 100, n - 1))

    def stage_percent(self, percent: int, index: int) -> int:
        """Renormalize p to 0-100 within the stage's share of the counter."""
        local = percent * self.stage_count - index * 100
        return max(0, min(local, 100))

    def feed(self, line: str) -> list[ProgressEvent]:
        percent = self.strategy.percent(line)
        if percent is None:
            if self.strategy.is_info(line):
                return [ProgressEvent.info(line.strip())]
            return []
        percent = max(0, min(int(percent), 100))

        events: list[ProgressEvent] = []
        total = self.stage_count
        index = self.estimate_stage(percent)
        previous = self.current_index
        if previous is not None and index > previous:
            events.append(ProgressEvent.stage_complete(self.stages[previous], previous + 1, total))
        self.current_index = index

        events.append(
            ProgressEvent.stage_progress(self.stages[index], index + 1, total, self.stage_percent(percent, index))
        )
        events.append(ProgressEvent.overall(percent))
        return events

    def finish(self) -> list[ProgressEvent]:
        """Call once at end of stream."""
        if self.current_index is None:
            return []
        index = self.current_index
        self.current_index = None
        return [ProgressEvent.stage_complete(self.stages[index], index + 1, self.stage_count)]
