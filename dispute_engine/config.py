"""Configuration module using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeadlineConfig(BaseModel):
    # Negotiation window opened on submission
    negotiation_hours: int = Field(
        default=48, description="Hours the parties have to negotiate"
    )
    # Holding period after escalation (manual or timed)
    escalation_arbitration_days: int = Field(
        default=7, description="Days an escalated dispute may wait for an arbitrator"
    )
    # Decision window after an arbitrator picks the case up
    assignment_arbitration_days: int = Field(
        default=3, description="Days the assigned arbitrator has to decide"
    )


class SchedulerConfig(BaseModel):
    negotiation_sweep_minutes: int = Field(
        default=10, description="Interval of the negotiation timeout sweep"
    )
    arbitration_sweep_minutes: int = Field(
        default=30, description="Interval of the arbitration timeout sweep"
    )
    lease_seconds: int = Field(
        default=30, description="Lease held by a sweep run to keep it single-flight"
    )


class NotificationConfig(BaseModel):
    max_attempts: int = Field(
        default=1, description="Delivery attempts per notification"
    )
    retry_backoff_base: float = Field(
        default=2.0, description="Base for exponential backoff between attempts"
    )
    circuit_breaker_threshold: int = Field(
        default=5, description="Failures before the notification breaker opens"
    )
    circuit_breaker_recovery_seconds: float = Field(
        default=60.0, description="Seconds before an open breaker is retried"
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    deadlines: DeadlineConfig = DeadlineConfig()

    scheduler: SchedulerConfig = SchedulerConfig()

    notifications: NotificationConfig = NotificationConfig()

    # Paths
    data_dir: Path = Field(default=Path("data"), description="Directory for data files")
    audit_log_dir: Path = Field(default=Path("logs"), description="Directory for audit logs")
    log_level: str = Field(default="INFO", description="Logging level")

    audit_use_presidio: bool = Field(
        default=True, description="Run Presidio NLP masking over audited free text"
    )
    max_text_length: int = Field(
        default=5000, description="Maximum length of any free-text field"
    )
    deep_link_prefix: str = Field(
        default="/disputes", description="Path prefix for notification deep links"
    )

    # Default user for the CLI
    default_user_id: str = Field(
        default="user_001", description="Default user ID for the CLI"
    )


# Global settings instance
settings = Settings()
