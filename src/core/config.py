"""
Configuration and environment loading.

- Loads settings.yml (YAML) from the repo root if present; falls back to environment variables (a .env file is honoured).
- Exposes SETTINGS with the keys used across the project (database URL, AI service credentials, orchestration tuning knobs).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

# this file: src/core/config.py --> repo root is two levels up
REPO_ROOT = Path(__file__).resolve().parents[2]
SETTINGS_FILE = REPO_ROOT / "settings.yml"


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a flat mapping of settings. A missing file simply means: no overrides."""
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top level of {path}")
    return data


def get_setting(
    cfg: dict[str, Any],
    name: str,
    default: Any,
    cast: Callable[[Any], Any] | None = None,
) -> Any:
    """YAML takes precedence over environment variables, which take precedence over the default."""
    if name in cfg:
        value = cfg[name]
    elif name in os.environ:
        value = os.environ[name]
    else:
        return default
    return cast(value) if cast else value


def split_models(value: Any) -> tuple[str, ...]:
    """Models may be given as a YAML list or as a comma separated string."""
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(model).strip() for model in value if str(model).strip())


@dataclass(frozen=True)
class Settings:
    database_url: str

    # Move generation service (OpenAI-compatible wire format)
    ai_api_key: str
    ai_base_url: str
    ai_models: tuple[str, ...]

    # Orchestration tuning knobs
    ai_max_attempts: int
    ai_attempt_timeout_s: float
    ai_deadline_s: float
    ai_retry_delay_s: float


def load_settings(path: Path = SETTINGS_FILE) -> Settings:
    cfg = load_yaml(path)
    return Settings(
        database_url=get_setting(cfg, "CHESS_DATABASE_URL", "sqlite:///chess.db"),
        ai_api_key=get_setting(cfg, "CHESS_AI_API_KEY", ""),
        ai_base_url=get_setting(cfg, "CHESS_AI_BASE_URL", ""),
        ai_models=get_setting(
            cfg, "CHESS_AI_MODELS", ("gpt-4o-mini",), cast=split_models
        ),
        ai_max_attempts=get_setting(cfg, "CHESS_AI_MAX_ATTEMPTS", 3, cast=int),
        ai_attempt_timeout_s=get_setting(
            cfg, "CHESS_AI_ATTEMPT_TIMEOUT_S", 3.0, cast=float
        ),
        ai_deadline_s=get_setting(cfg, "CHESS_AI_DEADLINE_S", 10.0, cast=float),
        ai_retry_delay_s=get_setting(cfg, "CHESS_AI_RETRY_DELAY_S", 0.1, cast=float),
    )


SETTINGS = load_settings()
