# src/taskwise/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Components receive settings by injection; get_settings() is only used by the composition root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "TASKWISE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _parse_hhmm(raw: str, default: tuple[int, int]) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute); invalid values fall back to default."""
    try:
        hh, mm = raw.strip().split(":", 1)
        hour, minute = int(hh), int(mm)
    except ValueError:
        return default
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return default
    return hour, minute


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Identity (auth is external; the CLI acts as a single local user) ----
    user_id: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Scheduling ----
    timezone: str
    scheduler_enabled: bool
    sweep_interval_seconds: int
    sweep_max_runtime_seconds: Optional[float]
    scheduler_poll_seconds: float
    digest_hour: int
    digest_minute: int

    # ---- LLM (OpenAI-compatible) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]
    llm_first_token_timeout: float
    llm_read_timeout: float
    llm_connect_timeout: float

    @property
    def tz(self) -> tzinfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return ZoneInfo("UTC")

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskwise") or "taskwise"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        user_id = (_env(_k("USER_ID"), "local") or "local").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskwise"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        timezone = (_env(_k("TIMEZONE"), "UTC") or "UTC").strip()
        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)
        sweep_interval_seconds = max(1, _env_int(_k("SWEEP_INTERVAL_SECONDS"), 15 * 60))

        max_runtime = _env_float(_k("SWEEP_MAX_RUNTIME_SECONDS"), 0.0)
        sweep_max_runtime_seconds = max_runtime if max_runtime > 0 else None

        scheduler_poll_seconds = max(0.5, _env_float(_k("SCHEDULER_POLL_SECONDS"), 30.0))
        digest_hour, digest_minute = _parse_hhmm(_env(_k("DIGEST_TIME"), "08:00"), (8, 0))

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENAI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://api.openai.com/v1")
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini"])

        # Optional metadata headers (e.g. for OpenRouter); empty values are dropped.
        extra_headers = {
            k: v
            for k, v in {
                "HTTP-Referer": _env(_k("HTTP_REFERER"), ""),
                "X-Title": _env(_k("APP_TITLE"), ""),
            }.items()
            if v
        }

        first_token = _env_float(_k("LLM_FIRST_TOKEN_TIMEOUT_SECONDS"), 20.0)
        read_timeout = max(_env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0), first_token)
        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            user_id=user_id,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            timezone=timezone,
            scheduler_enabled=scheduler_enabled,
            sweep_interval_seconds=sweep_interval_seconds,
            sweep_max_runtime_seconds=sweep_max_runtime_seconds,
            scheduler_poll_seconds=scheduler_poll_seconds,
            digest_hour=digest_hour,
            digest_minute=digest_minute,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_first_token_timeout=first_token,
            llm_read_timeout=read_timeout,
            llm_connect_timeout=connect_timeout,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
