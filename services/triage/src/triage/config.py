import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from services.triage.src.triage.core.aging import DEFAULT_INTERVAL_SECONDS, DEFAULT_THRESHOLDS
from services.triage.src.triage.core.ring_buffer import DEFAULT_CAPACITY


def _find_env_file() -> str | None:
    """Find .env file, preferring .env.local for local development."""
    for env_file in [".env.local", ".env"]:
        for base in [".", os.environ.get("REPO_ROOT", "")]:
            if base:
                path = Path(base) / env_file
                if path.exists():
                    return str(path)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Queues
    initial_queue_capacity: int = DEFAULT_CAPACITY

    # Aging
    aging_enabled: bool = True
    aging_interval_seconds: int = DEFAULT_INTERVAL_SECONDS
    escalation_thresholds: dict[int, int] = dict(DEFAULT_THRESHOLDS)

    # Notifications
    notification_webhook_url: str = ""
    notification_timeout_seconds: float = 5.0
    notification_workers: int = 4

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origin: str = ""


settings = Settings()
