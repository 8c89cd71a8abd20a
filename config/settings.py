"""
config/settings.py — Canonical configuration contract for check_logstash.

Uses pydantic-settings to validate and type-check the connection and
threshold options of a single plugin invocation. The CLI builds one Settings
value at startup and hands it to the check routine; nothing reads global
state after that.

Two usage modes:
  Production / CLI:
      cfg = load_settings({"PORT": 9601})   # CHECK_LOGSTASH_* env + overrides

  Tests (no os.environ bleed):
      cfg = Settings(HOSTNAME="logstash", PORT=9600, ...)
      # values come from kwargs only
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

ENV_PREFIX = "CHECK_LOGSTASH_"
_VALID_OVERRIDE_STATES = (0, 1, 2)
_UNKNOWN = 3


class Settings(BaseSettings):
    # Same contract as load_settings(): Settings() reads kwargs only, the
    # environment is merged in explicitly by load_settings().
    model_config = SettingsConfigDict(
        env_file=None,
        extra="ignore",
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
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------
    HOSTNAME: str = "localhost"
    PORT: int = 9600
    SECURE: bool = False
    INSECURE: bool = False

    # -------------------------------------------------------------------------
    # Authentication / TLS
    # -------------------------------------------------------------------------
    BEARER: Optional[str] = None
    BASICAUTH: Optional[str] = None
    CA_FILE: Optional[str] = None
    CERT_FILE: Optional[str] = None
    KEY_FILE: Optional[str] = None

    # -------------------------------------------------------------------------
    # Plugin runtime
    # -------------------------------------------------------------------------
    TIMEOUT: int = 30
    UNREACHABLE_STATE: int = _UNKNOWN

    # -------------------------------------------------------------------------
    # Health thresholds (percentages)
    # -------------------------------------------------------------------------
    FILE_DESCRIPTOR_THRESHOLD_WARN: str = "100"
    FILE_DESCRIPTOR_THRESHOLD_CRIT: str = "100"
    HEAP_USAGE_THRESHOLD_WARN: str = "70"
    HEAP_USAGE_THRESHOLD_CRIT: str = "80"
    CPU_USAGE_THRESHOLD_WARN: str = "100"
    CPU_USAGE_THRESHOLD_CRIT: str = "100"

    # -------------------------------------------------------------------------
    # Pipeline checks
    # -------------------------------------------------------------------------
    # "/" joins to /_node/stats/pipelines/ which returns every pipeline
    PIPELINE: str = "/"
    INFLIGHT_EVENTS_WARN: Optional[str] = None
    INFLIGHT_EVENTS_CRIT: Optional[str] = None
    FLOW_WARN: Optional[str] = None
    FLOW_CRIT: Optional[str] = None

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def scheme(self) -> str:
        return "https" if self.SECURE else "http"

    @property
    def base_url(self) -> str:
        """Root URL of the Logstash API, e.g. http://localhost:9600."""
        return f"{self.scheme}://{self.HOSTNAME}:{self.PORT}"

    @property
    def basic_auth_credentials(self) -> tuple[str, str] | None:
        if not self.BASICAUTH:
            return None
        user, _, password = self.BASICAUTH.partition(":")
        return user, password

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("HOSTNAME", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("hostname must not be empty")
        return v

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {v}")
        return v

    @field_validator("TIMEOUT")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("timeout must be >= 1 second")
        return v

    @field_validator("BASICAUTH")
    @classmethod
    def validate_basic_auth(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if len(v.split(":")) != 2:
            raise ValueError(
                "Specify the user name and password for server authentication <user:password>"
            )
        return v

    @field_validator("UNREACHABLE_STATE")
    @classmethod
    def normalize_unreachable_state(cls, v: int) -> int:
        """Only OK, WARNING and CRITICAL are valid overrides; anything else is UNKNOWN."""
        return v if v in _VALID_OVERRIDE_STATES else _UNKNOWN

    @field_validator("BEARER", "CA_FILE", "CERT_FILE", "KEY_FILE")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate settings from CHECK_LOGSTASH_* variables + overrides.

    Every Settings field can be provided as an environment variable with the
    CHECK_LOGSTASH_ prefix (CHECK_LOGSTASH_HOSTNAME, CHECK_LOGSTASH_BEARER,
    CHECK_LOGSTASH_BASICAUTH, CHECK_LOGSTASH_CA_FILE, ...). Explicit overrides
    (the parsed command line) take precedence over the environment.

    Raises:
        ValidationError: if a value has the wrong type or fails a validator.
    """
    env = os.environ if environ is None else environ
    env_vals = {
        key[len(ENV_PREFIX):]: value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and key[len(ENV_PREFIX):] in Settings.model_fields
    }
    merged = {**env_vals, **(overrides or {})}  # overrides win
    known = {k: v for k, v in merged.items() if k in Settings.model_fields}
    return Settings(**known)
