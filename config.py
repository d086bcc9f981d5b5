import os
from typing import Callable, Mapping, Optional

import pytz
from dotenv import load_dotenv
from pydantic import BaseModel

from errors import ConfigurationError

QUOTA_CHARGE_MODES = ("admission", "success")


class Settings(BaseModel):
    anthropic_api_key: str
    claude_model: str = "claude-sonnet-4-20250514"
    claude_max_tokens: int = 2048
    llm_timeout_s: float = 120.0
    llm_max_retries: int = 2
    llm_initial_delay_s: float = 1.0
    per_task_daily_limit: int = 3
    distinct_task_daily_limit: int = 5
    quota_timezone: str = "UTC"
    quota_charge: str = "admission"
    port: int = 5000


def _read(env: Mapping[str, str], name: str, cast: Callable, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} has an invalid value: {raw!r}") from e


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Reads settings from the environment (after loading .env).

    A missing ANTHROPIC_API_KEY is fatal: the service cannot answer anything
    without it.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    api_key = env.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY is not defined in the environment")

    quota_charge = env.get("QUOTA_CHARGE", "admission").strip().lower() or "admission"
    if quota_charge not in QUOTA_CHARGE_MODES:
        raise ConfigurationError(
            f"QUOTA_CHARGE must be one of {', '.join(QUOTA_CHARGE_MODES)}, got {quota_charge!r}"
        )

    quota_timezone = env.get("QUOTA_TIMEZONE", "UTC").strip() or "UTC"
    if quota_timezone not in pytz.all_timezones_set:
        raise ConfigurationError(f"QUOTA_TIMEZONE is not a known timezone: {quota_timezone!r}")

    return Settings(
        anthropic_api_key=api_key,
        claude_model=env.get("CLAUDE_MODEL", "").strip() or Settings.model_fields["claude_model"].default,
        claude_max_tokens=_read(env, "CLAUDE_MAX_TOKENS", int, 2048),
        llm_timeout_s=_read(env, "LLM_TIMEOUT_S", float, 120.0),
        llm_max_retries=_read(env, "LLM_MAX_RETRIES", int, 2),
        llm_initial_delay_s=_read(env, "LLM_INITIAL_DELAY_S", float, 1.0),
        per_task_daily_limit=_read(env, "PER_TASK_DAILY_LIMIT", int, 3),
        distinct_task_daily_limit=_read(env, "DISTINCT_TASK_DAILY_LIMIT", int, 5),
        quota_timezone=quota_timezone,
        quota_charge=quota_charge,
        port=_read(env, "PORT", int, 5000),
    )
