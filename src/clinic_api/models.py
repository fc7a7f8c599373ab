"""
Request and response models for the scheduling API.
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_serializer, model_validator


# Catalog models
class TaskInput(BaseModel):
    """Task definition from the task catalog."""

    id: str = Field(..., description="Unique task identifier")
    name: str = Field(..., description="Task display name")
    doctor_duration: int = Field(..., ge=0, description="Minutes the doctor is occupied")
    patient_duration: int = Field(..., ge=0, description="Minutes the patient is occupied")
    is_manual_schedulable: bool = Field(
        False, description="Whether operators may fix this task manually"
    )


class DoctorInput(BaseModel):
    id: str = Field(..., description="Unique doctor identifier")
    name: str = Field(..., description="Doctor name")
    can_do: list[str] = Field(
        default_factory=list, description="Task IDs this doctor can perform"
    )


class PatientInput(BaseModel):
    id: str = Field(..., description="Unique patient identifier")
    name: str = Field(..., description="Patient name")
    daily_id: int = Field(0, ge=0, description="Sequential number of the patient for the day")
    needs: list[str] = Field(
        default_factory=list,
        description="Task IDs the patient needs; duplicates are separate demands",
    )


class ManualAppointmentInput(BaseModel):
    """Operator-fixed appointment, given in minutes or as a wall-clock time."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    patient_id: str
    task_id: str
    doctor_id: str
    start_time: int | None = Field(
        None, description="Start in minutes from session start"
    )
    start_clock: str | None = Field(None, description="Start time in HH:MM format")

    @model_validator(mode="after")
    def check_start(self) -> "ManualAppointmentInput":
        if self.start_time is None and self.start_clock is None:
            raise ValueError("Either start_time or start_clock is required")
        return self


class BreakSettingsInput(BaseModel):
    """Break overrides; unset values fall back to configuration."""

    patient_break_minutes: int | None = Field(None, ge=0)
    doctor_break_minutes: int | None = Field(None, ge=0)


class ScheduleRequest(BaseModel):
    """Request model for scheduling one clinic session."""

    session: str = Field("morning", description="Session name: morning, afternoon")
    session_duration_minutes: int | None = Field(
        None, gt=0, description="Override of the configured session length"
    )
    tasks: list[TaskInput] = Field(default_factory=list)
    doctors: list[DoctorInput] = Field(default_factory=list)
    working_doctor_ids: list[str] | None = Field(
        None, description="Doctors working this session; all doctors when omitted"
    )
    patients: list[PatientInput] = Field(default_factory=list)
    manual_appointments: list[ManualAppointmentInput] = Field(default_factory=list)
    breaks: BreakSettingsInput = Field(default_factory=BreakSettingsInput)


# Response models
class ScheduledEntry(BaseModel):
    patient_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    task_id: str
    task_name: str
    start_time: int
    doctor_end_time: int
    patient_end_time: int
    start_clock: str
    doctor_end_clock: str
    patient_end_clock: str
    is_manual: bool = False


class UnhandledEntry(BaseModel):
    patient_id: str
    patient_name: str
    task_id: str
    task_name: str
    reason: str
    message: str


class ConflictEntry(BaseModel):
    appointment_id: str
    patient_id: str
    task_id: str
    doctor_id: str
    reason: str
    message: str
    conflicting_appointment_id: str | None = None
    conflicting_start_clock: str | None = None
    conflicting_end_clock: str | None = None


class ScheduleSummary(BaseModel):
    scheduled_count: int
    manual_count: int
    unhandled_count: int
    conflict_count: int
    last_end_time: int
    doctor_busy_minutes: dict[str, int]


class ScheduleResponse(BaseModel):
    """Response model for session scheduling."""

    success: bool
    status: str
    session: str
    session_start: str
    session_end: str
    scheduled: list[ScheduledEntry]
    unhandled: list[UnhandledEntry]
    conflicts: list[ConflictEntry]
    summary: ScheduleSummary
    request_id: str
    generated_at: datetime

    @field_serializer("generated_at")
    def serialize_generated_at(self, value: datetime) -> str:
        return value.isoformat()


class ValidationResponse(BaseModel):
    valid: bool
    conflicts: list[ConflictEntry]


class SessionInfo(BaseModel):
    name: str
    label: str
    start: str
    end: str
    duration_minutes: int
    duration_label: str


class ManualOption(BaseModel):
    """A (patient, task) pair that may be fixed manually."""

    patient_id: str
    patient_name: str
    patient_daily_id: int
    task_id: str
    task_name: str
    doctor_ids: list[str]
    appointment: ManualAppointmentInput | None = None


# Error Response Models
class ErrorDetail(BaseModel):
    """Error detail model following API standardization"""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context"
    )


class ErrorResponse(BaseModel):
    """Standardized error response model"""

    error: ErrorDetail

    @classmethod
    def create(
        cls, code: str, message: str, details: dict[str, Any] | None = None
    ) -> "ErrorResponse":
        """Create a standardized error response"""
        return cls(error=ErrorDetail(code=code, message=message, details=details))
