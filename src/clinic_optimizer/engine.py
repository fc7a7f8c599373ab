from __future__ import annotations

import logging
import time as time_module
from collections import Counter
from collections.abc import Sequence
from typing import Any

from .intervals import BusyTimeline, find_earliest_slot
from .models import (
    Doctor,
    ManualAppointment,
    Patient,
    ScheduledTask,
    ScheduleResult,
    SchedulerSettings,
    Task,
    UnhandledReason,
    UnhandledTask,
)
from .validator import validate_manual_appointments

logger = logging.getLogger(__name__)


def generate_schedule(
    settings: SchedulerSettings,
    tasks: Sequence[Task],
    working_doctors: Sequence[Doctor],
    patients: Sequence[Patient],
    manual_appointments: Sequence[ManualAppointment] = (),
    *,
    session_duration: int,
) -> ScheduleResult:
    """
    Place every (patient, task) demand of a session on a doctor and a start time.

    Manual appointments are validated first; any conflict rejects the whole
    batch and no greedy placement happens. Otherwise the manual appointments
    are committed as given and the remaining demands are placed one by one,
    in patient order then ``needs`` order, at the earliest start any capable
    doctor can offer. Ties go to the doctor listed first. Decisions are never
    revisited.

    Args:
        settings: Break settings for this run
        tasks: Task catalog
        working_doctors: Doctors working this session, in preference order
        patients: Patients of the session with their needs
        manual_appointments: Operator-fixed appointments
        session_duration: Session length in minutes

    Returns:
        ScheduleResult with scheduled tasks sorted by start time and unhandled
        demands in encounter order
    """
    if settings is None:
        raise ValueError("settings is required")
    if session_duration < 0:
        raise ValueError("session_duration must be >= 0")

    started = time_module.time()

    conflicts = validate_manual_appointments(
        manual_appointments, tasks, patients, session_duration, working_doctors
    )
    if conflicts:
        logger.warning(
            f"Rejecting {len(manual_appointments)} manual appointment(s): "
            f"{len(conflicts)} conflict(s), greedy placement skipped"
        )
        return ScheduleResult(
            scheduled=[],
            unhandled=[c.to_unhandled() for c in conflicts],
            conflicts=conflicts,
            status="MANUAL_CONFLICT",
        )

    task_map = {t.id: t for t in tasks}
    doctors_by_id: dict[str, Doctor] = {}
    for doctor in working_doctors:
        doctors_by_id.setdefault(doctor.id, doctor)
    doctor_states = {doctor_id: BusyTimeline(doctor_id) for doctor_id in doctors_by_id}
    patient_states = {p.id: BusyTimeline(p.id) for p in patients}

    scheduled: list[ScheduledTask] = []
    unhandled: list[UnhandledTask] = []

    # Each manual appointment covers one occurrence of its pair in `needs`
    satisfied: Counter[tuple[str, str]] = Counter()

    for appt in manual_appointments:
        satisfied[appt.patient_id, appt.task_id] += 1
        task = task_map.get(appt.task_id)
        if task is None:
            unhandled.append(
                UnhandledTask(
                    patient_id=appt.patient_id,
                    task_id=appt.task_id,
                    reason=UnhandledReason.TASK_NOT_FOUND,
                    message=f"Task {appt.task_id} not found",
                )
            )
            continue
        patient_state = patient_states.get(appt.patient_id)
        if patient_state is None:
            logger.warning(
                f"Manual appointment {appt.id} references unknown patient "
                f"{appt.patient_id}, skipping"
            )
            continue

        doctor_end = appt.start_time + task.doctor_duration
        patient_end = appt.start_time + task.patient_duration
        doctor_state = doctor_states.get(appt.doctor_id)
        if doctor_state is not None:
            doctor_state.add(appt.start_time, doctor_end)
        patient_state.add(appt.start_time, patient_end)
        scheduled.append(
            ScheduledTask(
                patient_id=appt.patient_id,
                doctor_id=appt.doctor_id,
                task_id=appt.task_id,
                start_time=appt.start_time,
                doctor_end_time=doctor_end,
                patient_end_time=patient_end,
                is_manual=True,
            )
        )

    queue: list[tuple[str, str]] = []
    for patient in patients:
        for task_id in patient.needs:
            key = (patient.id, task_id)
            if satisfied[key] > 0:
                satisfied[key] -= 1
                continue
            queue.append(key)

    logger.info(
        f"Scheduling {len(queue)} demand(s) for {len(patient_states)} patient(s) "
        f"with {len(doctor_states)} doctor(s), {len(scheduled)} manual appointment(s) fixed"
    )

    for patient_id, task_id in queue:
        task = task_map.get(task_id)
        if task is None:
            unhandled.append(
                UnhandledTask(
                    patient_id=patient_id,
                    task_id=task_id,
                    reason=UnhandledReason.TASK_NOT_FOUND,
                    message=f"Task {task_id} not found",
                )
            )
            continue

        patient_state = patient_states.get(patient_id)
        if patient_state is None:
            continue

        capable = [d for d in doctors_by_id.values() if d.can_perform(task_id)]
        if not capable:
            unhandled.append(
                UnhandledTask(
                    patient_id=patient_id,
                    task_id=task_id,
                    reason=UnhandledReason.NO_CAPABLE_DOCTOR,
                    message=f"No working doctor can perform {task.name}",
                )
            )
            continue

        best_doctor: Doctor | None = None
        best_start: int | None = None
        for doctor in capable:
            start = find_earliest_slot(
                doctor_states[doctor.id].intervals,
                patient_state.intervals,
                task.doctor_duration,
                task.patient_duration,
                settings.doctor_break_minutes,
                settings.patient_break_minutes,
                session_duration,
                slack=settings.max_slot_advances_slack,
            )
            # Strict comparison keeps the first doctor on ties
            if start is not None and (best_start is None or start < best_start):
                best_doctor, best_start = doctor, start

        if best_doctor is None or best_start is None:
            logger.debug(f"No slot for patient {patient_id} task {task_id}")
            unhandled.append(
                UnhandledTask(
                    patient_id=patient_id,
                    task_id=task_id,
                    reason=UnhandledReason.NO_FEASIBLE_SLOT,
                    message=f"No free time slot for {task.name} in this session",
                )
            )
            continue

        doctor_end = best_start + task.doctor_duration
        patient_end = best_start + task.patient_duration
        doctor_states[best_doctor.id].add(best_start, doctor_end)
        patient_state.add(best_start, patient_end)
        scheduled.append(
            ScheduledTask(
                patient_id=patient_id,
                doctor_id=best_doctor.id,
                task_id=task_id,
                start_time=best_start,
                doctor_end_time=doctor_end,
                patient_end_time=patient_end,
            )
        )
        logger.debug(
            f"Placed patient {patient_id} task {task_id} on doctor "
            f"{best_doctor.id} at {best_start}"
        )

    scheduled.sort(key=lambda s: s.start_time)

    status = "SCHEDULED" if queue or manual_appointments else "NO_DEMANDS"
    logger.info(
        f"Schedule finished in {time_module.time() - started:.4f}s: "
        f"{len(scheduled)} scheduled, {len(unhandled)} unhandled"
    )
    return ScheduleResult(scheduled=scheduled, unhandled=unhandled, status=status)


def doctor_timeline(result: ScheduleResult) -> dict[str, list[ScheduledTask]]:
    """Group scheduled tasks by doctor, in order of each doctor's first task."""
    timeline: dict[str, list[ScheduledTask]] = {}
    for item in result.scheduled:
        timeline.setdefault(item.doctor_id, []).append(item)
    return timeline


def patient_journey(result: ScheduleResult) -> dict[str, list[ScheduledTask]]:
    """Group scheduled tasks by patient, in order of each patient's first task."""
    journey: dict[str, list[ScheduledTask]] = {}
    for item in result.scheduled:
        journey.setdefault(item.patient_id, []).append(item)
    return journey


def summarize_result(result: ScheduleResult) -> dict[str, Any]:
    busy_minutes: dict[str, int] = {}
    for item in result.scheduled:
        busy_minutes[item.doctor_id] = busy_minutes.get(item.doctor_id, 0) + (
            item.doctor_end_time - item.start_time
        )
    last_end = max(
        (max(s.doctor_end_time, s.patient_end_time) for s in result.scheduled),
        default=0,
    )
    return {
        "scheduled_count": len(result.scheduled),
        "manual_count": sum(1 for s in result.scheduled if s.is_manual),
        "unhandled_count": len(result.unhandled),
        "conflict_count": len(result.conflicts),
        "last_end_time": last_end,
        "doctor_busy_minutes": busy_minutes,
    }
