from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence

from .intervals import overlaps
from .models import (
    Doctor,
    ManualAppointment,
    ManualConflict,
    Patient,
    Task,
    UnhandledReason,
)

logger = logging.getLogger(__name__)


def validate_manual_appointments(
    appointments: Sequence[ManualAppointment],
    tasks: Sequence[Task],
    patients: Sequence[Patient],
    session_duration: int,
    doctors: Sequence[Doctor] = (),
) -> list[ManualConflict]:
    """
    Check manual appointments for session bounds and double-booking.

    Appointments are checked in input order. Each one is compared only with
    the appointments seen before it, so a later appointment colliding with
    two earlier ones yields two conflicts. Appointments whose task or patient
    is unknown are skipped here and reported by the engine instead.

    Args:
        appointments: Manual appointments in operator order
        tasks: Task catalog
        patients: Patients of the session
        session_duration: Session length in minutes
        doctors: Doctor catalog, used for display names in messages

    Returns:
        List of conflicts, empty when the batch is consistent
    """
    task_map = {t.id: t for t in tasks}
    patient_map = {p.id: p for p in patients}
    doctor_names = {d.id: d.name for d in doctors}

    conflicts: list[ManualConflict] = []
    doctor_seen: dict[str, list[tuple[int, int, str]]] = defaultdict(list)
    patient_seen: dict[str, list[tuple[int, int, str]]] = defaultdict(list)

    for appt in appointments:
        task = task_map.get(appt.task_id)
        patient = patient_map.get(appt.patient_id)
        if task is None or patient is None:
            logger.debug(
                f"Skipping validation of appointment {appt.id}: "
                f"unknown task or patient ({appt.task_id}, {appt.patient_id})"
            )
            continue

        def conflict(reason: UnhandledReason, message: str, **kwargs) -> ManualConflict:
            return ManualConflict(
                appointment_id=appt.id,
                patient_id=appt.patient_id,
                task_id=appt.task_id,
                doctor_id=appt.doctor_id,
                reason=reason,
                message=message,
                **kwargs,
            )

        if appt.start_time < 0:
            conflicts.append(
                conflict(
                    UnhandledReason.MANUAL_START_OUT_OF_BOUNDS,
                    f"Start time {appt.start_time} is outside the session",
                )
            )
            continue

        doctor_end = appt.start_time + task.doctor_duration
        patient_end = appt.start_time + task.patient_duration
        if doctor_end > session_duration or patient_end > session_duration:
            conflicts.append(
                conflict(
                    UnhandledReason.MANUAL_END_OUT_OF_BOUNDS,
                    f"Task {task.name} ending at {max(doctor_end, patient_end)} "
                    f"runs past the session end ({session_duration})",
                )
            )
            continue

        doctor_name = doctor_names.get(appt.doctor_id, appt.doctor_id)
        for start, end, other_id in doctor_seen[appt.doctor_id]:
            if overlaps(appt.start_time, doctor_end, start, end):
                conflicts.append(
                    conflict(
                        UnhandledReason.MANUAL_DOCTOR_CONFLICT,
                        f"Doctor {doctor_name} is already booked from {start} to {end}",
                        conflicting_appointment_id=other_id,
                        conflicting_start=start,
                        conflicting_end=end,
                    )
                )

        for start, end, other_id in patient_seen[appt.patient_id]:
            if overlaps(appt.start_time, patient_end, start, end):
                conflicts.append(
                    conflict(
                        UnhandledReason.MANUAL_PATIENT_CONFLICT,
                        f"Patient {patient.name} is already booked from {start} to {end}",
                        conflicting_appointment_id=other_id,
                        conflicting_start=start,
                        conflicting_end=end,
                    )
                )

        doctor_seen[appt.doctor_id].append((appt.start_time, doctor_end, appt.id))
        patient_seen[appt.patient_id].append((appt.start_time, patient_end, appt.id))

    if conflicts:
        logger.warning(
            f"Manual appointment validation found {len(conflicts)} conflict(s) "
            f"in {len(appointments)} appointment(s)"
        )
    return conflicts
