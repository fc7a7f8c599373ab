"""
Clinic session windows and minutes <-> wall-clock conversion.

The scheduling core works purely in minutes from session start; this module
maps those minutes to display times for a given session.
"""

from dataclasses import dataclass

from clinic_api.config import Settings, settings
from clinic_api.exceptions import ResourceNotFoundError, ValidationError


@dataclass(frozen=True)
class SessionWindow:
    name: str
    label: str
    start_minute_of_day: int
    duration_minutes: int

    @property
    def end_minute_of_day(self) -> int:
        return self.start_minute_of_day + self.duration_minutes


def _clock_minutes(value: str) -> int:
    hour, minute = map(int, value.split(":"))
    return hour * 60 + minute


def get_sessions(config: Settings | None = None) -> dict[str, SessionWindow]:
    """Build the session catalog from configuration."""
    config = config or settings
    return {
        "morning": SessionWindow(
            name="morning",
            label="Morning",
            start_minute_of_day=_clock_minutes(config.morning_start),
            duration_minutes=config.morning_duration_minutes,
        ),
        "afternoon": SessionWindow(
            name="afternoon",
            label="Afternoon",
            start_minute_of_day=_clock_minutes(config.afternoon_start),
            duration_minutes=config.afternoon_duration_minutes,
        ),
    }


def get_session(name: str, config: Settings | None = None) -> SessionWindow:
    sessions = get_sessions(config)
    session = sessions.get(name.lower())
    if session is None:
        raise ResourceNotFoundError("Session", name)
    return session


def minutes_to_clock(minutes: int, session: SessionWindow) -> str:
    """
    Convert minutes from session start to a display time.

    Example: with a 07:00 session, 0 -> "07:00", 90 -> "08:30"
    """
    total = session.start_minute_of_day + minutes
    return f"{total // 60:02d}:{total % 60:02d}"


def clock_to_minutes(value: str, session: SessionWindow) -> int:
    """
    Convert a display time to minutes from session start.

    Example: with a 07:00 session, "08:30" -> 90
    """
    try:
        hour, minute = map(int, value.split(":"))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError("Time must be in HH:MM format", field="time") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError("Time must be in HH:MM format", field="time")
    return hour * 60 + minute - session.start_minute_of_day


def format_duration(minutes: int) -> str:
    """Format a duration, e.g. 45 -> "45'", 60 -> "1h", 90 -> "1h 30'"."""
    if minutes < 60:
        return f"{minutes}'"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}'"


def session_time_range(session: SessionWindow) -> str:
    return (
        f"{minutes_to_clock(0, session)} - "
        f"{minutes_to_clock(session.duration_minutes, session)}"
    )
