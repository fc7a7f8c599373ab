"""Busy-interval bookkeeping and the earliest-slot search shared by the engine."""

from __future__ import annotations

import bisect
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Interval = tuple[int, int]


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Half-open [start, end): touching ends are not an overlap
    return a_start < b_end and a_end > b_start


@dataclass
class BusyTimeline:
    """Committed busy intervals of one doctor or patient during a run."""

    owner_id: str
    intervals: list[Interval] = field(default_factory=list)
    free_at: int = 0

    def add(self, start: int, end: int) -> None:
        bisect.insort(self.intervals, (start, end))
        self.free_at = max(self.free_at, end)


@dataclass(frozen=True)
class _Block:
    start: int
    # End already extended by the owner's break
    end: int
    duration: int
    brk: int


def _blocks(
    intervals: Sequence[Interval], break_minutes: int, duration: int
) -> list[_Block]:
    return [
        _Block(start, end + break_minutes, duration, break_minutes)
        for start, end in intervals
    ]


def find_earliest_slot(
    doctor_intervals: Sequence[Interval],
    patient_intervals: Sequence[Interval],
    doctor_duration: int,
    patient_duration: int,
    doctor_break: int,
    patient_break: int,
    session_duration: int,
    *,
    slack: int = 2,
) -> int | None:
    """Find the earliest start at which both the doctor and the patient are free.

    The break applies on both sides of the new task: it must start at least
    one break after every earlier commitment of the owner ends, and end at
    least one break before every later commitment starts. The doctor is
    tested over ``[start, start + doctor_duration)`` and the patient over
    ``[start, start + patient_duration)``. Whenever a candidate collides with
    a busy interval it jumps to that interval's end plus break; every start
    it skips collides with the same interval, so the first collision-free
    candidate is the earliest feasible one.

    The session bound applies to the task itself, not to its trailing break.

    Returns None when no start fits inside the session or the number of
    candidate advances exceeds ``2 * len(intervals) + slack``.
    """
    blocks = sorted(
        _blocks(doctor_intervals, doctor_break, doctor_duration)
        + _blocks(patient_intervals, patient_break, patient_duration),
        key=lambda b: (b.start, b.end),
    )
    # Past the last extended end nothing can collide any more
    horizon = max((b.end for b in blocks), default=0)
    max_advances = 2 * len(blocks) + slack

    candidate = 0
    advances = 0
    while True:
        if (
            candidate + doctor_duration > session_duration
            or candidate + patient_duration > session_duration
        ):
            return None
        if candidate >= horizon:
            return candidate

        blocker = next(
            (
                b
                for b in blocks
                if overlaps(candidate, candidate + b.duration + b.brk, b.start, b.end)
            ),
            None,
        )
        if blocker is None:
            return candidate

        advances += 1
        if advances > max_advances:
            logger.error(
                f"Slot search exceeded {max_advances} advances "
                f"({len(blocks)} busy intervals), treating as infeasible"
            )
            return None
        candidate = blocker.end
