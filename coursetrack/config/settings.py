"""Engine settings, read from ``COURSETRACK_*`` environment variables or ``.env``."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Settings for the content and progress engine."""

    model_config = SettingsConfigDict(
        env_prefix="COURSETRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="coursetrack", description="Name used in logs and log files")
    app_version: str = Field(default="0.1.0")
    environment: Literal["development", "staging", "production", "testing"] = "development"

    # Cassandra
    cassandra_hosts: list[str] = Field(default=["localhost"], description="Contact points")
    cassandra_port: int = 9042
    cassandra_keyspace: str = "coursetrack"
    cassandra_username: str | None = None
    cassandra_password: str | None = None
    cassandra_local_datacenter: str = Field(
        default="datacenter1", description="Data center for routing and replication"
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replicas per data center when creating the keyspace"
    )
    cassandra_consistency: Literal["ONE", "LOCAL_ONE", "LOCAL_QUORUM", "QUORUM"] = Field(
        default="LOCAL_QUORUM", description="Consistency of regular reads and writes"
    )
    cassandra_serial_consistency: Literal["SERIAL", "LOCAL_SERIAL"] = Field(
        default="LOCAL_SERIAL",
        description="Consistency of number claims and versioned progress writes",
    )
    cassandra_connect_timeout: float = Field(default=10.0, description="Seconds")
    cassandra_request_timeout: float = Field(default=10.0, description="Seconds")

    # Logging
    log_level: LogLevel = "INFO"
    log_format: Literal["json", "console"] = "console"
    log_include_caller_info: bool = False
    log_dir: str = "logs"
    log_file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate after (bytes)")
    log_file_backup_count: int = Field(default=5, description="Rotated files kept")

    # Content numbering
    number_allocation_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts to claim the next module/lecture number before giving up",
    )

    # Progress
    progress_active_window_days: int = Field(
        default=30,
        ge=1,
        description="A learner counts as active if seen within this many days",
    )
    dashboard_recent_activity_limit: int = Field(
        default=5, ge=1, description="Courses listed as recent activity"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
