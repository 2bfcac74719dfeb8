from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class KioskTimings:
    # All durations in seconds.
    inactivity_time: float = 30.0
    auto_submit_countdown: int = 5
    rotation_speed: float = 0.05
    rotation_display_time: float = 4.0
    reset_time: float = 5.0
    admin_clicks_required: int = 5
    admin_click_timeout: float = 3.0
    sync_interval: float = 900.0
    status_message_time: float = 5.0


@dataclass(frozen=True)
class Settings:
    # Storage
    storage_backend: str
    data_dir: str
    s3_bucket: str
    aws_region: str
    queue_key: str

    # Survey content
    questions_path: Optional[str]

    # Relay
    relay_url: str
    relay_timeout_seconds: float
    sheet_name: str

    # HTTP
    cors_origins: List[str]

    # Logging
    log_level: str
    log_json: bool

    timings: KioskTimings

    @staticmethod
    def from_env() -> "Settings":
        # Read configuration from environment variables.
        # Defaults target a single local kiosk talking to its own relay.
        timings = KioskTimings(
            inactivity_time=_env_float("KIOSK_INACTIVITY_SECONDS", 30.0),
            auto_submit_countdown=_env_int("KIOSK_AUTO_SUBMIT_COUNTDOWN", 5),
            rotation_speed=_env_float("KIOSK_ROTATION_SPEED_SECONDS", 0.05),
            rotation_display_time=_env_float("KIOSK_ROTATION_DISPLAY_SECONDS", 4.0),
            reset_time=_env_float("KIOSK_RESET_SECONDS", 5.0),
            admin_clicks_required=_env_int("KIOSK_ADMIN_CLICKS_REQUIRED", 5),
            admin_click_timeout=_env_float("KIOSK_ADMIN_CLICK_TIMEOUT_SECONDS", 3.0),
            sync_interval=_env_float("KIOSK_SYNC_INTERVAL_SECONDS", 900.0),
            status_message_time=_env_float("KIOSK_STATUS_MESSAGE_SECONDS", 5.0),
        )

        origins = _env_str("CORS_ORIGINS", "http://localhost:5173") or ""

        return Settings(
            storage_backend=(_env_str("KIOSK_STORAGE_BACKEND", "local") or "local").lower(),
            data_dir=_env_str("KIOSK_DATA_DIR", "data") or "data",
            s3_bucket=_env_str("S3_BUCKET", "kiosk-survey-data") or "kiosk-survey-data",
            aws_region=_env_str("AWS_REGION", "ap-southeast-1") or "ap-southeast-1",
            queue_key=_env_str("KIOSK_QUEUE_KEY", "surveySubmissions.json") or "surveySubmissions.json",

            questions_path=_env_str("KIOSK_QUESTIONS_PATH"),

            relay_url=_env_str("KIOSK_RELAY_URL", "http://127.0.0.1:8000/api/submit-survey")
            or "http://127.0.0.1:8000/api/submit-survey",
            relay_timeout_seconds=_env_float("KIOSK_RELAY_TIMEOUT_SECONDS", 15.0),
            sheet_name=_env_str("KIOSK_SHEET_NAME", "Sheet1") or "Sheet1",

            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],

            log_level=_env_str("KIOSK_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("KIOSK_LOG_JSON", True),

            timings=timings,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton"""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
