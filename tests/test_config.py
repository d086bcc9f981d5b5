import pytest

from config import load_settings
from errors import ConfigurationError


def test_defaults() -> None:
    settings = load_settings({"ANTHROPIC_API_KEY": "sk-test"})

    assert settings.llm_timeout_s == 120.0
    assert settings.llm_max_retries == 2
    assert settings.llm_initial_delay_s == 1.0
    assert settings.per_task_daily_limit == 3
    assert settings.distinct_task_daily_limit == 5
    assert settings.quota_timezone == "UTC"
    assert settings.quota_charge == "admission"
    assert settings.port == 5000


def test_overrides() -> None:
    settings = load_settings({
        "ANTHROPIC_API_KEY": "sk-test",
        "CLAUDE_MODEL": "claude-other",
        "LLM_MAX_RETRIES": "4",
        "LLM_INITIAL_DELAY_S": "0.5",
        "QUOTA_TIMEZONE": "Europe/Berlin",
        "QUOTA_CHARGE": "Success",
        "PORT": "8080",
    })

    assert settings.claude_model == "claude-other"
    assert settings.llm_max_retries == 4
    assert settings.llm_initial_delay_s == 0.5
    assert settings.quota_timezone == "Europe/Berlin"
    assert settings.quota_charge == "success"
    assert settings.port == 8080


@pytest.mark.parametrize(
    "env",
    [
        {},
        {"ANTHROPIC_API_KEY": "  "},
        {"ANTHROPIC_API_KEY": "sk", "PORT": "eighty"},
        {"ANTHROPIC_API_KEY": "sk", "QUOTA_CHARGE": "never"},
        {"ANTHROPIC_API_KEY": "sk", "QUOTA_TIMEZONE": "Mars/Olympus"},
    ],
)
def test_invalid_configuration_fails_fast(env) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(env)
