from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    api_title: str = "Clinic Scheduler API"
    api_version: str = "0.1.0"
    api_description: str = "Greedy doctor/patient scheduling for clinic sessions"

    # Server Configuration
    host: str = "0.0.0.0"  # nosec B104
    port: int = 8000
    debug: bool = False
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")

    # Environment
    environment: str = Field(
        default="development", pattern="^(development|staging|production|test)$"
    )

    # Scheduling defaults, used when a request does not override them
    patient_break_minutes: int = Field(
        default=0, ge=0, description="Rest a patient needs between two tasks"
    )
    doctor_break_minutes: int = Field(
        default=0, ge=0, description="Rest a doctor needs between two tasks"
    )

    # Session windows
    morning_start: str = Field(default="07:00", description="Morning session start (HH:MM)")
    morning_duration_minutes: int = Field(default=270, gt=0)
    afternoon_start: str = Field(
        default="13:30", description="Afternoon session start (HH:MM)"
    )
    afternoon_duration_minutes: int = Field(default=210, gt=0)

    @field_validator("morning_start", "afternoon_start")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        """Validate HH:MM session start"""
        try:
            hour, minute = map(int, v.split(":"))
        except (ValueError, TypeError):
            raise ValueError("Session start must be in HH:MM format") from None
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError("Session start must be in HH:MM format")
        return f"{hour:02d}:{minute:02d}"

    model_config = SettingsConfigDict(
        env_prefix="CLINIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
