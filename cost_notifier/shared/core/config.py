import sys
import tomllib
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cost_notifier.shared.core.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "config.toml"


@lru_cache
def get_settings(config_file: Optional[str] = None) -> "Settings":
    """
    Returns a cached settings instance.

    Values come from the environment first, then `.env`, then the TOML config
    file (`config.toml` in the working directory unless `config_file` is given).
    """
    file_values = load_config_file(Path(config_file) if config_file else None)
    try:
        return Settings(**file_values)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {exc.error_count()} error(s)",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def flatten_config_sections(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """
    Flatten TOML tables into settings field names.

    `{"aws": {"region": "x"}}` becomes `{"AWS_REGION": "x"}`.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_config_sections(value, name))
        else:
            flat[name.upper()] = value
    return flat


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """
    Read and flatten a TOML config file.

    A missing default file is fine. A missing explicit file is a
    ConfigurationError. A file that cannot be parsed is reported and ignored.
    """
    explicit = path is not None
    target = path if path is not None else Path(DEFAULT_CONFIG_FILE)

    if not target.is_file():
        if explicit:
            raise ConfigurationError(
                f"Config file not found: {target}", code="config_file_missing"
            )
        return {}

    try:
        with target.open("rb") as fh:
            data = tomllib.load(fh)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        print(f"Error reading config file: {exc}", file=sys.stderr)
        return {}

    print(f"Using config file: {target}", file=sys.stderr)
    return flatten_config_sections(data)


class Settings(BaseSettings):
    """
    Runtime configuration for the cost notifier.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """

    APP_NAME: str = "aws-cost-notifier"
    DEBUG: bool = False

    # AWS Cost Explorer
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_CONNECT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    AWS_READ_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # Slack incoming webhook
    SLACK_ENABLED: bool = False
    SLACK_WEBHOOK_URL: Optional[str] = None
    # Duration string ("10s", "1m30s"); falls back to 10s when unparsable
    SLACK_TIMEOUT: str = "10s"
    # Empty list disables the host allowlist check
    SLACK_WEBHOOK_ALLOWED_DOMAINS: list[str] = ["hooks.slack.com"]
    SLACK_CHANNEL: Optional[str] = None
    SLACK_USERNAME: Optional[str] = None
    SLACK_ICON_EMOJI: Optional[str] = None

    # Report
    COST_SKIP_THRESHOLD: Decimal = Decimal("0.01")
    MAX_SERVICES: int = Field(default=10, ge=1)
    RUN_TIMEOUT_SECONDS: float = Field(default=120.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs; the environment wins over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator("AWS_REGION")
    @classmethod
    def _region_not_blank(cls, value: str) -> str:
        region = value.strip()
        if not region:
            raise ValueError("AWS_REGION must not be empty")
        return region

    @field_validator("SLACK_WEBHOOK_ALLOWED_DOMAINS")
    @classmethod
    def _normalize_domains(cls, value: list[str]) -> list[str]:
        return [d.strip().lower() for d in value if d and d.strip()]

    @model_validator(mode="after")
    def _strip_optional_strings(self) -> "Settings":
        for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "SLACK_WEBHOOK_URL"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, value.strip() or None)
        return self

    @property
    def has_static_aws_credentials(self) -> bool:
        return bool(self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY)
