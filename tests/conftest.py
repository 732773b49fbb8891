"""
Global pytest fixtures for the cost notifier test suite.

Provides:
- Settings isolated from the host environment and `.env`
- Fake aioboto3 sessions wrapping a mocked Cost Explorer client
"""
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from cost_notifier.shared.core.config import Settings, get_settings

WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXXXXXX"

SETTINGS_ENV_VARS = (
    "DEBUG",
    "AWS_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "SLACK_ENABLED",
    "SLACK_WEBHOOK_URL",
    "SLACK_TIMEOUT",
    "SLACK_WEBHOOK_ALLOWED_DOMAINS",
    "SLACK_CHANNEL",
    "SLACK_USERNAME",
    "SLACK_ICON_EMOJI",
    "COST_SKIP_THRESHOLD",
    "MAX_SERVICES",
    "RUN_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host variables (AWS_REGION, DEBUG, ...) out of settings under test."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_global_state():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        AWS_REGION="us-east-1",
        SLACK_ENABLED=True,
        SLACK_WEBHOOK_URL=WEBHOOK_URL,
    )


def make_session(ce_client: Any) -> MagicMock:
    """Fake aioboto3 session whose `client("ce")` yields `ce_client`."""
    session = MagicMock()
    session.client.return_value.__aenter__.return_value = ce_client
    session.client.return_value.__aexit__.return_value = False
    return session


@pytest.fixture
def ce_client() -> MagicMock:
    client = MagicMock()
    client.get_cost_and_usage = AsyncMock()
    client.get_cost_forecast = AsyncMock()
    return client


@pytest.fixture
def ce_session(ce_client: MagicMock) -> MagicMock:
    return make_session(ce_client)
