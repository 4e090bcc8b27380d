"""Configuration management for the Replicate bridge.

Two kinds of configuration live in this module, and they are deliberately
kept apart:

Static settings (:class:`BridgeConfig`)
    Process-level knobs loaded once at startup with Pydantic Settings: the
    Replicate API base URL, poll budget, HTTP mount path, server bind address
    and so on.  Values come from environment variables with the
    ``REPLICATE_BRIDGE_`` prefix, then a ``.env`` file, then the defaults
    defined here.

Runtime provider configuration (:class:`ConfigStore`)
    The API credential and default model id.  These are mutable at runtime
    through the administrative ``POST /config`` endpoint and are never written
    to disk; the chat application owns persistence.  The credential is seeded
    from ``REPLICATE_API_TOKEN`` when the store is created.

Example .env file:
    REPLICATE_API_TOKEN=r8_...
    REPLICATE_BRIDGE_DEFAULT_MODEL=black-forest-labs/flux-dev
    REPLICATE_BRIDGE_POLL_INTERVAL=1.5
    REPLICATE_BRIDGE_SERVER_PORT=7861

Usage Example
-------------
    from replicate_bridge.core.config import ConfigStore, config

    store = ConfigStore.from_settings(config)
    store.update(credential="r8_abc")
    print(store.read().default_model_id)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_ID = "black-forest-labs/flux-schnell"


class BridgeConfig(BaseSettings):
    """Static settings for the Replicate bridge.

    Attributes
    ----------
    Replicate API:
        api_token : SecretStr
            Initial API credential.  Read from ``REPLICATE_API_TOKEN`` (or
            ``REPLICATE_BRIDGE_API_TOKEN``).  Only used to seed the
            :class:`ConfigStore`; later changes go through the store.
        default_model : str
            Model id used when a generate request does not name one.
        api_base_url : str
            Base URL of the Replicate HTTP API.
        request_timeout : float
            Timeout in seconds for a single Replicate HTTP call.

    Polling:
        poll_interval : float
            Fixed delay in seconds between two status fetches.
        poll_max_attempts : int
            Number of status fetches before a prediction is declared timed
            out.

    Server:
        mount_path : str
            URL prefix under which all routes are mounted.  A missing
            leading ``/`` is added.
        server_host : str
            uvicorn bind address.
        server_port : int
            uvicorn port (1024-65535).
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root logging level configured by the CLI entry point.

    Notes
    -----
    - Settings are read once; restart the process to pick up changes.
    - The credential is a ``SecretStr`` so it never appears in reprs or logs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REPLICATE_BRIDGE_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Replicate API
    api_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("REPLICATE_API_TOKEN", "REPLICATE_BRIDGE_API_TOKEN"),
        description="Initial Replicate API token (seeds the runtime config store)",
    )
    default_model: str = Field(
        default=DEFAULT_MODEL_ID,
        description="Model id used when a request does not name one",
    )
    api_base_url: str = Field(
        default="https://api.replicate.com/v1",
        description="Base URL of the Replicate HTTP API",
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for one Replicate HTTP call",
        gt=0,
    )

    # Polling
    poll_interval: float = Field(
        default=2.0,
        description="Seconds to wait between two prediction status fetches",
        ge=0,
    )
    poll_max_attempts: int = Field(
        default=60,
        description="Status fetches before a prediction is declared timed out",
        ge=1,
    )

    # Server
    mount_path: str = Field(
        default="/api/plugins/replicate",
        description="URL prefix for all bridge routes",
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=7861,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level for the CLI entry point",
    )

    @field_validator("mount_path")
    @classmethod
    def _normalize_mount_path(cls, value: str) -> str:
        """Ensure a non-empty prefix starts with ``/``; ``""`` mounts at the root."""
        value = value.strip()
        if value and not value.startswith("/"):
            value = "/" + value
        return value


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable snapshot of the runtime provider configuration.

    Attributes:
        credential: Replicate API token.  An empty string means "not
            configured".  Excluded from ``repr`` so snapshots can be logged.
        default_model_id: Model used when a request does not name one.
    """

    credential: str = field(default="", repr=False)
    default_model_id: str = DEFAULT_MODEL_ID

    @property
    def configured(self) -> bool:
        return bool(self.credential)


class ConfigStore:
    """Process-wide holder of the current :class:`ProviderConfig`.

    Updates are whole-snapshot replacements performed under a lock, so a
    reader always sees either the old or the new configuration, never a
    mix.  The lock only guards the swap itself; nothing awaits while
    holding it.
    """

    def __init__(self, initial: ProviderConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._current = initial or ProviderConfig()

    @classmethod
    def from_settings(cls, settings: BridgeConfig) -> ConfigStore:
        """Create a store seeded from static settings."""
        default_model = settings.default_model.strip() or DEFAULT_MODEL_ID
        return cls(
            ProviderConfig(
                credential=settings.api_token.get_secret_value().strip(),
                default_model_id=default_model,
            )
        )

    def read(self) -> ProviderConfig:
        """Return the current configuration snapshot."""
        with self._lock:
            return self._current

    @property
    def configured(self) -> bool:
        return self.read().configured

    def update(
        self,
        credential: str | None = None,
        default_model_id: str | None = None,
    ) -> ProviderConfig:
        """Apply a partial update and return the new snapshot.

        Args:
            credential: New API token.  ``None`` leaves it unchanged; a blank
                or whitespace-only string clears it.
            default_model_id: New default model.  ``None`` or a blank string
                leaves the existing default in place.

        Returns:
            The snapshot that is now current.
        """
        with self._lock:
            updated = self._current
            if credential is not None:
                updated = replace(updated, credential=credential.strip())
            if default_model_id is not None and default_model_id.strip():
                updated = replace(updated, default_model_id=default_model_id.strip())
            self._current = updated
            return updated


# Global settings instance, loaded from REPLICATE_BRIDGE_* variables and .env.
config = BridgeConfig()
