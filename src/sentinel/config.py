"""
Sentinel Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for Sentinel logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/sentinel if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/sentinel if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "sentinel" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "sentinel" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_db: str = "sentinel"
    postgres_user: str = "sentinel"
    postgres_password: str = "sentinel_dev_password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str = Field(default="", validation_alias="DATABASE_URL")

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct database URL from components (DATABASE_URL wins if set)."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # GitHub
    github_webhook_secret: str = ""
    github_app_id: str = ""
    github_app_private_key: str = ""  # PEM, literal "\n" sequences allowed
    github_token: str = ""  # Static token, used instead of App auth when set
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 30.0

    # Admin API
    admin_api_key: str = ""

    # Dashboard (used for links in notifications)
    app_url: str = "http://localhost:3000"

    # Notification channels
    slack_webhook_url: str = ""
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    alert_email_to: str = ""
    alert_email_from: str = "Sentinel <alerts@sentinel.dev>"
    pagerduty_routing_key: str = ""
    pagerduty_events_url: str = "https://events.pagerduty.com/v2/enqueue"
    notification_timeout: float = 10.0

    # Metrics / alerting
    reporting_timezone: str = "America/Los_Angeles"
    lock_ttl_seconds: int = 3600  # Safety net for crashed lock holders
    alert_dedup_window_hours: int = 24
    review_cost_per_hour: int = 150  # USD, used in verification-tax messages

    # Workers
    worker_poll_interval: float = 2.0
    worker_stale_job_timeout_minutes: int = 30
    worker_purge_completed_days: int = 7
    webhook_worker_concurrency: int = 5
    analysis_worker_concurrency: int = 3
    notification_worker_concurrency: int = 5
    scheduled_worker_concurrency: int = 1
    scheduler_tick_interval: float = 30.0

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
