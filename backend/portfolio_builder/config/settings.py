"""
Runtime configuration.

Values come from the environment, with a ``.env`` file in the working
directory loaded first (existing environment variables win).
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

DEFAULT_DATA_DIR = Path.home() / ".portfolio_builder"
DEFAULT_MODEL = "gpt-4o-mini"


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Settings:
    openai_api_key: Optional[str] = None
    llm_model: str = DEFAULT_MODEL
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000
    llm_timeout_seconds: float = 30.0
    data_dir: Path = DEFAULT_DATA_DIR
    export_dir: Optional[Path] = None
    require_photo: bool = True
    max_photo_bytes: int = 5 * 1024 * 1024
    log_level: str = "INFO"

    @property
    def resolved_export_dir(self) -> Path:
        return self.export_dir or self.data_dir / "exports"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if not raw:
        return None
    return Path(raw).expanduser()


def load_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    load_dotenv()

    max_photo_mb = _env_float("PORTFOLIO_MAX_PHOTO_MB", 5.0)
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        llm_model=os.getenv("PORTFOLIO_LLM_MODEL") or DEFAULT_MODEL,
        llm_temperature=_env_float("PORTFOLIO_LLM_TEMPERATURE", 0.7),
        llm_max_tokens=_env_int("PORTFOLIO_LLM_MAX_TOKENS", 1000),
        llm_timeout_seconds=_env_float("PORTFOLIO_LLM_TIMEOUT", 30.0),
        data_dir=_env_path("PORTFOLIO_DATA_DIR") or DEFAULT_DATA_DIR,
        export_dir=_env_path("PORTFOLIO_EXPORT_DIR"),
        require_photo=_env_bool("PORTFOLIO_REQUIRE_PHOTO", True),
        max_photo_bytes=int(max_photo_mb * 1024 * 1024),
        log_level=(os.getenv("PORTFOLIO_LOG_LEVEL") or "INFO").upper(),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
