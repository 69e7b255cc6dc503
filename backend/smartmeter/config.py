import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration read from the environment (and `.env`)."""

    database_url: str = "sqlite:///./smartmeter.db"
    redis_url: str = "redis://localhost:6379/0"
    cache_enabled: bool = True
    celery_broker_url: str = "redis://localhost:6379/1"
    notification_mode: str = "celery"  # "celery" or "inline"

    # Spike detection
    spike_window: int = 10
    spike_min_history: int = 5
    spike_ratio: float = 1.5

    # Email channel
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: str = "alerts@smartmeter.local"

    # Push channel
    firebase_key_base64: Optional[str] = None

    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost", "http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            redis_url=os.environ.get("REDIS_URL", cls.redis_url),
            cache_enabled=_env_bool("CACHE_ENABLED", True),
            celery_broker_url=os.environ.get("CELERY_BROKER_URL", cls.celery_broker_url),
            notification_mode=os.environ.get("NOTIFICATION_MODE", cls.notification_mode).lower(),
            spike_window=int(os.environ.get("SPIKE_WINDOW", cls.spike_window)),
            spike_min_history=int(os.environ.get("SPIKE_MIN_HISTORY", cls.spike_min_history)),
            spike_ratio=float(os.environ.get("SPIKE_RATIO", cls.spike_ratio)),
            smtp_host=os.environ.get("SMTP_HOST") or None,
            smtp_port=int(os.environ.get("SMTP_PORT", cls.smtp_port)),
            smtp_user=os.environ.get("SMTP_USER") or None,
            smtp_password=os.environ.get("SMTP_PASSWORD") or None,
            smtp_sender=os.environ.get("SMTP_SENDER", cls.smtp_sender),
            firebase_key_base64=os.environ.get("FIREBASE_KEY_BASE64") or None,
            cors_origins=_env_list("CORS_ORIGINS", "http://localhost,http://localhost:3000"),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
        )


settings = Settings.from_env()
