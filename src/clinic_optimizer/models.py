from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class UnhandledReason(str, Enum):
    """Reason codes for demands or manual appointments that were not placed."""

    TASK_NOT_FOUND = "task-not-found"
    NO_CAPABLE_DOCTOR = "no-capable-doctor"
    NO_FEASIBLE_SLOT = "no-feasible-slot"
    MANUAL_START_OUT_OF_BOUNDS = "manual-start-out-of-bounds"
    MANUAL_END_OUT_OF_BOUNDS = "manual-end-out-of-bounds"
    MANUAL_DOCTOR_CONFLICT = "manual-doctor-conflict"
    MANUAL_PATIENT_CONFLICT = "manual-patient-conflict"


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    doctor_duration: int
    patient_duration: int
    is_manual_schedulable: bool = False


@dataclass(frozen=True)
class Doctor:
    id: str
    name: str
    can_do: tuple[str, ...] = ()

    def can_perform(self, task_id: str) -> bool:
        return task_id in self.can_do


@dataclass(frozen=True)
class Patient:
    id: str
    name: str
    needs: tuple[str, ...] = ()
    daily_id: int = 0


@dataclass(frozen=True)
class ManualAppointment:
    """Operator-fixed assignment of a demand to a doctor at a start minute."""

    id: str
    patient_id: str
    task_id: str
    doctor_id: str
    start_time: int


@dataclass(frozen=True)
class ScheduledTask:
    patient_id: str
    doctor_id: str
    task_id: str
    start_time: int
    doctor_end_time: int
    patient_end_time: int
    is_manual: bool = False


@dataclass(frozen=True)
class UnhandledTask:
    patient_id: str
    task_id: str
    reason: UnhandledReason
    message: str = ""


@dataclass(frozen=True)
class ManualConflict:
    """A manual appointment rejected by the conflict validator."""

    appointment_id: str
    patient_id: str
    task_id: str
    doctor_id: str
    reason: UnhandledReason
    message: str
    conflicting_appointment_id: str | None = None
    conflicting_start: int | None = None
    conflicting_end: int | None = None

    def to_unhandled(self) -> UnhandledTask:
        return UnhandledTask(
            patient_id=self.patient_id,
            task_id=self.task_id,
            reason=self.reason,
            message=self.message,
        )


@dataclass
class ScheduleResult:
    scheduled: list[ScheduledTask] = field(default_factory=list)
    unhandled: list[UnhandledTask] = field(default_factory=list)
    conflicts: list[ManualConflict] = field(default_factory=list)
    status: str = "SCHEDULED"

    @property
    def success(self) -> bool:
        return not self.conflicts


@dataclass(frozen=True)
class SchedulerSettings:
    """Break settings for one scheduling run.

    Breaks are the minimum gap, in minutes, a doctor or patient needs after
    finishing one task before starting the next.
    """

    patient_break_minutes: int = 0
    doctor_break_minutes: int = 0
    # Extra candidate advances allowed by the slot search on top of
    # twice the number of busy intervals.
    max_slot_advances_slack: int = 2

    def __post_init__(self) -> None:
        if self.patient_break_minutes < 0:
            raise ValueError("patient_break_minutes must be >= 0")
        if self.doctor_break_minutes < 0:
            raise ValueError("doctor_break_minutes must be >= 0")
        if self.max_slot_advances_slack < 0:
            raise ValueError("max_slot_advances_slack must be >= 0")
