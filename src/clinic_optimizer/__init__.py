"""Clinic session scheduling core, decoupled from the API layer.

This package is intentionally dependency-free. It validates manual
appointments and places (patient, task) demands on doctors with a greedy
earliest-slot heuristic behind pure-Python interfaces.
"""

from .engine import (
    doctor_timeline,
    generate_schedule,
    patient_journey,
    summarize_result,
)
from .intervals import BusyTimeline, find_earliest_slot, overlaps
from .models import (
    Doctor,
    ManualAppointment,
    ManualConflict,
    Patient,
    ScheduledTask,
    ScheduleResult,
    SchedulerSettings,
    Task,
    UnhandledReason,
    UnhandledTask,
)
from .validator import validate_manual_appointments

__version__ = "0.1.0"
__all__ = [
    "BusyTimeline",
    "Doctor",
    "doctor_timeline",
    "find_earliest_slot",
    "generate_schedule",
    "ManualAppointment",
    "ManualConflict",
    "overlaps",
    "Patient",
    "patient_journey",
    "ScheduledTask",
    "ScheduleResult",
    "SchedulerSettings",
    "summarize_result",
    "Task",
    "UnhandledReason",
    "UnhandledTask",
    "validate_manual_appointments",
]
