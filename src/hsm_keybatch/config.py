# SPDX-License-Identifier: MPL-2.0
"""Settings for a provisioning run, read from the environment."""
from __future__ import annotations

import os
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError

MAX_KEYS = 100
DEFAULT_API_URL = "https://sbx-rest-api.cloudshsm.com"

DEFAULT_ENV_FILE = ".env"

KEY_PATH = "/v1/key"
SIGN_PATH = "/v1/synchronousSign"

TOKEN_ENV = "SECUROSYS_TOKEN_VALUE"
NUM_KEYS_ENV = "NUM_KEYS"
KEY_PREFIX_ENV = "KEY_PREFIX"
API_URL_ENV = "HSM_API_URL"
MAX_ATTEMPTS_ENV = "HSM_MAX_ATTEMPTS"
RETRY_DELAY_ENV = "HSM_RETRY_DELAY"
REQUEST_TIMEOUT_ENV = "HSM_REQUEST_TIMEOUT"


def validate_batch_size(count: int, max_keys: int = MAX_KEYS) -> int:
    """Return ``count`` if it lies in ``(0, max_keys]``."""
    if isinstance(count, bool) or not isinstance(count, int):
        raise ConfigurationError(f"{NUM_KEYS_ENV} must be an integer, got {count!r}")
    if count <= 0:
        raise ConfigurationError(f"{NUM_KEYS_ENV} must be positive, got {count}")
    if count > max_keys:
        raise ConfigurationError(
            f"{NUM_KEYS_ENV} ({count}) exceeds the maximum allowed ({max_keys})."
        )
    return count


class KeyBatchSettings(BaseModel):
    """Configuration consumed by the provisioning pipeline."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="Bearer token for the HSM REST API")
    num_keys: int = Field(..., description="Number of key pairs to create")
    key_prefix: str = Field(..., min_length=1, description="Prefix for generated key labels")
    api_base_url: str = Field(DEFAULT_API_URL, description="Base URL of the HSM REST API")
    max_keys: int = Field(MAX_KEYS, gt=0, description="Upper bound for num_keys")
    max_attempts: int = Field(3, ge=1, description="Attempts per remote call")
    retry_delay_seconds: float = Field(1.0, ge=0, description="Fixed delay between attempts")
    request_timeout_seconds: float = Field(30.0, gt=0, description="Per-attempt transport timeout")

    @model_validator(mode="after")
    def _check_batch_size(self) -> "KeyBatchSettings":
        validate_batch_size(self.num_keys, self.max_keys)
        return self

    @classmethod
    def create(cls, **values) -> "KeyBatchSettings":
        """Build settings, reporting every problem as a ConfigurationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Union[str, os.PathLike]] = None,
        **overrides,
    ) -> "KeyBatchSettings":
        """Read settings from ``environ`` (``os.environ`` by default).

        Variables from ``env_file`` fill in whatever the environment does not
        set. Keyword overrides win over both; ``None`` values are ignored.
        """
        env: Dict[str, str] = {}
        if env_file is not None:
            env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        env.update(os.environ if environ is None else environ)
        values: Dict[str, object] = {}

        token = env.get(TOKEN_ENV)
        if token:
            values["token"] = token
        raw_count = env.get(NUM_KEYS_ENV)
        if raw_count:
            try:
                values["num_keys"] = int(raw_count)
            except ValueError as e:
                raise ConfigurationError(
                    f"{NUM_KEYS_ENV} must be an integer, got {raw_count!r}"
                ) from e
        prefix = env.get(KEY_PREFIX_ENV)
        if prefix:
            values["key_prefix"] = prefix

        optional = {
            API_URL_ENV: ("api_base_url", str),
            MAX_ATTEMPTS_ENV: ("max_attempts", int),
            RETRY_DELAY_ENV: ("retry_delay_seconds", float),
            REQUEST_TIMEOUT_ENV: ("request_timeout_seconds", float),
        }
        for name, (field_name, convert) in optional.items():
            raw = env.get(name)
            if not raw:
                continue
            try:
                values[field_name] = convert(raw)
            except ValueError as e:
                raise ConfigurationError(f"{name} has an invalid value: {raw!r}") from e

        values.update({k: v for k, v in overrides.items() if v is not None})

        if "num_keys" not in values or "key_prefix" not in values:
            raise ConfigurationError(
                f"Error: {NUM_KEYS_ENV} or {KEY_PREFIX_ENV} not found in the environment or .env file."
            )
        if "token" not in values:
            raise ConfigurationError(f"Error: {TOKEN_ENV} not found in the environment or .env file.")
        return cls.create(**values)

    def endpoint(self, path: str) -> str:
        """Absolute URL for an API ``path`` such as ``/v1/key``."""
        return self.api_base_url.rstrip("/") + path

    @property
    def key_url(self) -> str:
        return self.endpoint(KEY_PATH)

    @property
    def sign_url(self) -> str:
        return self.endpoint(SIGN_PATH)

    def auth_headers(self) -> Dict[str, str]:
        """Bearer authorization and JSON content type for every HSM call."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
