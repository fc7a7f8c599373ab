"""
Scheduler API endpoints for clinic session scheduling.
"""

import logging
from collections import defaultdict
from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status

from clinic_api.config import settings
from clinic_api.exceptions import ResourceNotFoundError, ValidationError
from clinic_api.models import (
    ConflictEntry,
    ErrorResponse,
    ManualAppointmentInput,
    ManualOption,
    ScheduledEntry,
    ScheduleRequest,
    ScheduleResponse,
    ScheduleSummary,
    SessionInfo,
    UnhandledEntry,
    ValidationResponse,
)
from clinic_api.sessions import (
    SessionWindow,
    clock_to_minutes,
    format_duration,
    get_session,
    get_sessions,
    minutes_to_clock,
)
from clinic_optimizer import (
    Doctor,
    ManualAppointment,
    ManualConflict,
    Patient,
    SchedulerSettings,
    Task,
    generate_schedule,
    summarize_result,
    validate_manual_appointments,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["scheduling"])


def _resolve_session(request: ScheduleRequest) -> SessionWindow:
    session = get_session(request.session)
    if request.session_duration_minutes is not None:
        session = SessionWindow(
            name=session.name,
            label=session.label,
            start_minute_of_day=session.start_minute_of_day,
            duration_minutes=request.session_duration_minutes,
        )
    return session


def _working_doctors(request: ScheduleRequest) -> list[Doctor]:
    """Apply the working-doctor filter, keeping catalog order."""
    known_ids = {d.id for d in request.doctors}
    if request.working_doctor_ids is None:
        working_ids = known_ids
    else:
        working_ids = set(request.working_doctor_ids)
        unknown = [d for d in request.working_doctor_ids if d not in known_ids]
        if unknown:
            raise ResourceNotFoundError("Doctor", ", ".join(unknown))
    return [
        Doctor(id=d.id, name=d.name, can_do=tuple(d.can_do))
        for d in request.doctors
        if d.id in working_ids
    ]


def _manual_appointment(
    appt: ManualAppointmentInput, session: SessionWindow
) -> ManualAppointment:
    start = (
        appt.start_time
        if appt.start_time is not None
        else clock_to_minutes(appt.start_clock, session)
    )
    return ManualAppointment(
        id=appt.id,
        patient_id=appt.patient_id,
        task_id=appt.task_id,
        doctor_id=appt.doctor_id,
        start_time=start,
    )


def _scheduler_settings(request: ScheduleRequest) -> SchedulerSettings:
    breaks = request.breaks
    return SchedulerSettings(
        patient_break_minutes=(
            breaks.patient_break_minutes
            if breaks.patient_break_minutes is not None
            else settings.patient_break_minutes
        ),
        doctor_break_minutes=(
            breaks.doctor_break_minutes
            if breaks.doctor_break_minutes is not None
            else settings.doctor_break_minutes
        ),
    )


def _core_inputs(request: ScheduleRequest, session: SessionWindow):
    tasks = [
        Task(
            id=t.id,
            name=t.name,
            doctor_duration=t.doctor_duration,
            patient_duration=t.patient_duration,
            is_manual_schedulable=t.is_manual_schedulable,
        )
        for t in request.tasks
    ]
    patients = [
        Patient(id=p.id, name=p.name, needs=tuple(p.needs), daily_id=p.daily_id)
        for p in request.patients
    ]
    appointments = [_manual_appointment(a, session) for a in request.manual_appointments]
    return tasks, _working_doctors(request), patients, appointments


def _conflict_entry(conflict: ManualConflict, session: SessionWindow) -> ConflictEntry:
    return ConflictEntry(
        appointment_id=conflict.appointment_id,
        patient_id=conflict.patient_id,
        task_id=conflict.task_id,
        doctor_id=conflict.doctor_id,
        reason=conflict.reason.value,
        message=conflict.message,
        conflicting_appointment_id=conflict.conflicting_appointment_id,
        conflicting_start_clock=(
            minutes_to_clock(conflict.conflicting_start, session)
            if conflict.conflicting_start is not None
            else None
        ),
        conflicting_end_clock=(
            minutes_to_clock(conflict.conflicting_end, session)
            if conflict.conflicting_end is not None
            else None
        ),
    )


def _session_info(session: SessionWindow) -> SessionInfo:
    return SessionInfo(
        name=session.name,
        label=session.label,
        start=minutes_to_clock(0, session),
        end=minutes_to_clock(session.duration_minutes, session),
        duration_minutes=session.duration_minutes,
        duration_label=format_duration(session.duration_minutes),
    )


@router.get("/sessions", response_model=list[SessionInfo])
async def list_sessions():
    """List configured clinic sessions with their wall-clock ranges."""
    return [_session_info(s) for s in get_sessions().values()]


@router.post("/validate", response_model=ValidationResponse)
async def validate_manual_schedule(request: ScheduleRequest):
    """Check manual appointments for out-of-session times and double-booking."""
    session = _resolve_session(request)
    tasks, doctors, patients, appointments = _core_inputs(request, session)
    all_doctors = [
        Doctor(id=d.id, name=d.name, can_do=tuple(d.can_do)) for d in request.doctors
    ]
    conflicts = validate_manual_appointments(
        appointments, tasks, patients, session.duration_minutes, all_doctors
    )
    return ValidationResponse(
        valid=not conflicts,
        conflicts=[_conflict_entry(c, session) for c in conflicts],
    )


@router.post("/generate", response_model=ScheduleResponse)
async def create_session_schedule(request: ScheduleRequest):
    """
    Create the schedule of one clinic session.

    This endpoint:
    1. Resolves the session window and the working doctors
    2. Validates manual appointments (any conflict rejects the batch)
    3. Places remaining demands greedily at the earliest feasible slot
    4. Returns scheduled tasks with wall-clock times and unhandled demands
    """
    try:
        logger.info(
            f"Creating {request.session} schedule: {len(request.patients)} patients, "
            f"{len(request.doctors)} doctors, "
            f"{len(request.manual_appointments)} manual appointments"
        )
        session = _resolve_session(request)
        tasks, doctors, patients, appointments = _core_inputs(request, session)

        result = generate_schedule(
            _scheduler_settings(request),
            tasks,
            doctors,
            patients,
            appointments,
            session_duration=session.duration_minutes,
        )

        task_names = {t.id: t.name for t in tasks}
        patient_names = {p.id: p.name for p in patients}
        doctor_names = {d.id: d.name for d in request.doctors}

        scheduled = [
            ScheduledEntry(
                patient_id=s.patient_id,
                patient_name=patient_names.get(s.patient_id, s.patient_id),
                doctor_id=s.doctor_id,
                doctor_name=doctor_names.get(s.doctor_id, s.doctor_id),
                task_id=s.task_id,
                task_name=task_names.get(s.task_id, s.task_id),
                start_time=s.start_time,
                doctor_end_time=s.doctor_end_time,
                patient_end_time=s.patient_end_time,
                start_clock=minutes_to_clock(s.start_time, session),
                doctor_end_clock=minutes_to_clock(s.doctor_end_time, session),
                patient_end_clock=minutes_to_clock(s.patient_end_time, session),
                is_manual=s.is_manual,
            )
            for s in result.scheduled
        ]
        unhandled = [
            UnhandledEntry(
                patient_id=u.patient_id,
                patient_name=patient_names.get(u.patient_id, u.patient_id),
                task_id=u.task_id,
                task_name=task_names.get(u.task_id, u.task_id),
                reason=u.reason.value,
                message=u.message,
            )
            for u in result.unhandled
        ]

        response = ScheduleResponse(
            success=result.success,
            status=result.status,
            session=session.name,
            session_start=minutes_to_clock(0, session),
            session_end=minutes_to_clock(session.duration_minutes, session),
            scheduled=scheduled,
            unhandled=unhandled,
            conflicts=[_conflict_entry(c, session) for c in result.conflicts],
            summary=ScheduleSummary(**summarize_result(result)),
            request_id=str(uuid4()),
            generated_at=datetime.now(),
        )

        logger.info(
            f"Session schedule completed: {len(scheduled)} scheduled, "
            f"{len(unhandled)} unhandled, status {result.status}"
        )
        return response

    except ValidationError as e:
        logger.error(f"Validation error in schedule creation: {e}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=ErrorResponse.create(
                code="VALIDATION_ERROR",
                message=e.message,
                details={"field": e.field} if e.field else None,
            ).model_dump(),
        )

    except ResourceNotFoundError as e:
        logger.error(f"Resource not found in schedule creation: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorResponse.create(
                code="RESOURCE_NOT_FOUND", message=e.message
            ).model_dump(),
        )

    except Exception as e:
        logger.error(f"Unexpected error in schedule creation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ErrorResponse.create(
                code="INTERNAL_SERVER_ERROR",
                message="Internal server error during schedule generation",
                details={"error_type": type(e).__name__},
            ).model_dump(),
        )


@router.post("/manual-options", response_model=list[ManualOption])
async def get_manual_options(request: ScheduleRequest):
    """
    List the (patient, task) pairs that operators may fix manually.

    Only tasks flagged as manual-schedulable are offered, each with the
    working doctors able to perform it and the appointment already fixed
    for that pair, if any.
    """
    doctors = _working_doctors(request)
    manual_tasks = {t.id: t for t in request.tasks if t.is_manual_schedulable}

    # One appointment covers one occurrence of its (patient, task) need
    pending: dict[tuple[str, str], list[ManualAppointmentInput]] = defaultdict(list)
    for appt in request.manual_appointments:
        pending[appt.patient_id, appt.task_id].append(appt)

    options: list[ManualOption] = []
    for patient in request.patients:
        for task_id in patient.needs:
            task = manual_tasks.get(task_id)
            if task is None:
                continue
            queue = pending[patient.id, task_id]
            appointment = queue.pop(0) if queue else None
            options.append(
                ManualOption(
                    patient_id=patient.id,
                    patient_name=patient.name,
                    patient_daily_id=patient.daily_id,
                    task_id=task_id,
                    task_name=task.name,
                    doctor_ids=[d.id for d in doctors if d.can_perform(task_id)],
                    appointment=appointment,
                )
            )
    return options


@router.get("/test", response_model=dict[str, str])
async def test_scheduler():
    """Test endpoint to verify the greedy scheduler with a one-patient session."""
    try:
        result = generate_schedule(
            SchedulerSettings(),
            [Task(id="test_task", name="Consultation", doctor_duration=30, patient_duration=30)],
            [Doctor(id="test_doctor", name="Test Doctor", can_do=("test_task",))],
            [Patient(id="test_patient", name="Test Patient", needs=("test_task",))],
            session_duration=270,
        )
        return {
            "status": "success",
            "message": "Greedy scheduler working correctly",
            "test_assignments": str(len(result.scheduled)),
            "schedule_status": result.status,
        }
    except Exception as e:
        return {
            "status": "error",
            "message": f"Greedy scheduler test failed: {str(e)}",
        }
