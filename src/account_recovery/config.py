"""Configuration and settings module for Account Recovery.

Provides the :class:`RecoveryConfig` class which centralises all configuration
for the recovery workflow.  Configuration is resolved in priority order:

1. **Environment variables** (highest priority) -- ``ACCOUNT_RECOVERY_*``
2. **Config file** -- ``config.json`` inside the storage directory
3. **Defaults** (lowest priority) -- sensible built-in values

Typical usage::

    config = RecoveryConfig.load()                          # storage under the cwd
    config = RecoveryConfig.load(storage_path="/custom/path")
    config = RecoveryConfig(storage_path="/custom/path")    # programmatic construction

    print(config.storage_path)       # resolved absolute path to .account-recovery/
    print(config.gateway_base_url)   # "http://localhost:3000/auth" (or overridden value)
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Default storage directory name, placed at the project root.
DEFAULT_STORAGE_DIR_NAME = ".account-recovery"

# Config file name inside the storage directory.
CONFIG_FILE_NAME = "config.json"

# Environment variable prefix.  For example ``ACCOUNT_RECOVERY_LOG_LEVEL=DEBUG``.
ENV_PREFIX = "ACCOUNT_RECOVERY_"

DEFAULT_GATEWAY_BASE_URL = "http://localhost:3000/auth"

# Seconds the success message stays visible before moving to the reset view.
DEFAULT_REDIRECT_DELAY_SECONDS = 1.5

# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class RecoveryConfig(BaseModel):
    """Centralised configuration for the recovery workflow.

    Attributes
    ----------
    storage_path:
        Absolute path to the durable store directory.  When not set
        explicitly, it is derived from ``project_root`` +
        :data:`DEFAULT_STORAGE_DIR_NAME`.
    log_level:
        Python logging level name.
    gateway_base_url:
        Base URL of the identity provider's HTTP API.
    gateway_timeout:
        Seconds before an outbound gateway call is abandoned.  *None* leaves
        the call unbounded and lets the transport decide.
    redirect_delay_seconds:
        Delay hint returned with a successful verification so the caller
        can show the success message before switching views.
    token_ttl_seconds:
        Optional lifetime of a persisted recovery token.  Expired tokens
        read as absent.
    project_root:
        Directory the default storage location hangs off.  Defaults to
        the current working directory.
    """

    storage_path: Optional[str] = Field(
        default=None,
        description="Absolute path to the .account-recovery/ storage directory.",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL.",
    )
    gateway_base_url: str = Field(
        default=DEFAULT_GATEWAY_BASE_URL,
        min_length=1,
        description="Base URL of the identity provider.",
    )
    gateway_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout in seconds for gateway calls (None = unbounded).",
    )
    redirect_delay_seconds: float = Field(
        default=DEFAULT_REDIRECT_DELAY_SECONDS,
        ge=0,
        description="Delay before leaving the verify view after success.",
    )
    token_ttl_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Lifetime of a persisted token (None = no expiry).",
    )
    project_root: Optional[str] = Field(
        default=None,
        description="Base directory for the default storage location.",
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_paths(self) -> "RecoveryConfig":
        """Resolve ``storage_path`` and ``project_root`` to absolute paths."""
        self.project_root = str(Path(self.project_root or Path.cwd()).resolve())

        if self.storage_path is not None:
            self.storage_path = str(Path(self.storage_path).resolve())
        else:
            self.storage_path = str(
                Path(self.project_root) / DEFAULT_STORAGE_DIR_NAME
            )

        return self

    @model_validator(mode="after")
    def validate_log_level(self) -> "RecoveryConfig":
        """Normalise and validate the log level string."""
        normalised = self.log_level.upper().strip()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalised not in valid_levels:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {', '.join(sorted(valid_levels))}."
            )
        self.log_level = normalised
        return self

    @model_validator(mode="after")
    def strip_base_url(self) -> "RecoveryConfig":
        self.gateway_base_url = self.gateway_base_url.rstrip("/")
        return self

    # ------------------------------------------------------------------
    # Factory: load from file + environment
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        project_root: Optional[str] = None,
        storage_path: Optional[str] = None,
    ) -> "RecoveryConfig":
        """Load configuration with full resolution: file -> env -> defaults.

        Parameters
        ----------
        project_root:
            Base directory for the default storage location.  When *None*,
            the current working directory is used.
        storage_path:
            Explicit storage directory.  Takes precedence over
            ``ACCOUNT_RECOVERY_STORAGE_PATH``; ``config.json`` is read from
            whichever directory wins.
        """
        resolved_root = str(Path(project_root or Path.cwd()).resolve())

        env_values = _load_env_overrides()
        if storage_path is not None:
            env_values["storage_path"] = storage_path
        storage = env_values.get("storage_path") or str(
            Path(resolved_root) / DEFAULT_STORAGE_DIR_NAME
        )

        file_values = _load_config_file(storage)
        # The file cannot relocate the directory it was read from.
        file_values.pop("storage_path", None)

        merged: dict = {}
        merged.update(file_values)
        merged.update(env_values)
        merged["project_root"] = resolved_root

        return cls.model_validate(merged)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def configure_logging(self) -> None:
        """Apply the configured log level to the ``account_recovery`` logger.

        Idempotent: a handler is only attached the first time.
        """
        pkg_logger = logging.getLogger("account_recovery")
        pkg_logger.setLevel(self.log_level)

        if not pkg_logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(self.log_level)
            formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            pkg_logger.addHandler(handler)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _load_config_file(storage_path: str) -> dict:
    """Read ``<storage_path>/config.json`` and return its contents as a dict.

    Returns an empty dict if the file does not exist or is malformed.
    """
    path = Path(storage_path) / CONFIG_FILE_NAME

    if not path.is_file():
        logger.debug("No config file at %s. Using defaults.", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
        if not isinstance(data, dict):
            logger.warning(
                "Config file %s does not contain a JSON object. Ignoring.",
                path,
            )
            return {}
        logger.info("Loaded configuration from %s", path)
        return data
    except json.JSONDecodeError:
        logger.warning(
            "Config file %s contains invalid JSON. Ignoring.",
            path,
            exc_info=True,
        )
        return {}
    except OSError:
        logger.warning(
            "Could not read config file %s. Ignoring.",
            path,
            exc_info=True,
        )
        return {}


def _load_env_overrides() -> dict:
    """Read ``ACCOUNT_RECOVERY_*`` environment variables and return overrides.

    Supported variables:

    - ``ACCOUNT_RECOVERY_STORAGE_PATH``
    - ``ACCOUNT_RECOVERY_LOG_LEVEL``
    - ``ACCOUNT_RECOVERY_GATEWAY_BASE_URL``
    - ``ACCOUNT_RECOVERY_GATEWAY_TIMEOUT`` (number)
    - ``ACCOUNT_RECOVERY_REDIRECT_DELAY_SECONDS`` (number)
    - ``ACCOUNT_RECOVERY_TOKEN_TTL_SECONDS`` (integer)
    """
    overrides: dict = {}

    for env_key, field_name in (
        ("STORAGE_PATH", "storage_path"),
        ("LOG_LEVEL", "log_level"),
        ("GATEWAY_BASE_URL", "gateway_base_url"),
    ):
        val = os.environ.get(f"{ENV_PREFIX}{env_key}")
        if val is not None:
            overrides[field_name] = val

    _float_keys = {
        "GATEWAY_TIMEOUT": "gateway_timeout",
        "REDIRECT_DELAY_SECONDS": "redirect_delay_seconds",
    }
    for env_key, field_name in _float_keys.items():
        val = os.environ.get(f"{ENV_PREFIX}{env_key}")
        if val is not None:
            try:
                overrides[field_name] = float(val)
            except ValueError:
                logger.warning(
                    "Invalid %s%s value: %r. Must be a number. Ignoring.",
                    ENV_PREFIX, env_key, val,
                )

    ttl = os.environ.get(f"{ENV_PREFIX}TOKEN_TTL_SECONDS")
    if ttl is not None:
        try:
            overrides["token_ttl_seconds"] = int(ttl)
        except ValueError:
            logger.warning(
                "Invalid %sTOKEN_TTL_SECONDS value: %r. Must be an integer. Ignoring.",
                ENV_PREFIX,
                ttl,
            )

    if overrides:
        logger.info(
            "Environment overrides applied: %s",
            ", ".join(overrides.keys()),
        )

    return overrides
