# SPDX-License-Identifier: MPL-2.0
"""Typed configuration for authsign.

Settings are read, lowest precedence first, from field defaults, a JSON file
(``--config`` or ``AUTHSIGN_CONFIG``) and ``AUTHSIGN_*`` environment variables.
Malformed values raise :class:`ConfigurationError`; ``lenient=True`` falls
back to the default for each offending field and logs a warning instead.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from authsign.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "AUTHSIGN_"
CONFIG_ENV_VAR = "AUTHSIGN_CONFIG"
DEFAULT_TIMESTAMP_URL = "http://timestamp.digicert.com"
DEFAULT_SESSION_PROCESS = "SimplySignDesktop"


class Architecture(str, Enum):
    """Target architecture of a packaged executable."""

    ANY = "any"
    X86 = "x86"
    X64 = "x64"


def _reject_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be empty")
    return value


class PackagingOptions(BaseModel):
    """Metadata passed verbatim to the script-to-executable converter."""

    model_config = ConfigDict(extra="forbid")

    output_path: Optional[Path] = None
    icon_path: Optional[Path] = None
    product_name: Optional[str] = None
    company: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    copyright: Optional[str] = None  # noqa: A003
    no_console: bool = False
    require_admin: bool = False
    architecture: Architecture = Architecture.ANY
    overwrite: bool = False

    @field_validator("product_name", "company", "version", "description", "copyright")
    @classmethod
    def check_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _reject_blank(value)


class Settings(BaseModel):
    """Application settings."""

    model_config = ConfigDict(extra="ignore")

    folder: Optional[Path] = None
    icon_path: Optional[Path] = None
    product_name: Optional[str] = None
    company: Optional[str] = None
    version: Optional[str] = None
    architecture: Architecture = Architecture.ANY
    no_console: bool = False
    require_admin: bool = False
    timestamp_enabled: bool = True
    timestamp_url: str = DEFAULT_TIMESTAMP_URL
    session_process_name: str = DEFAULT_SESSION_PROCESS
    session_executable: Optional[Path] = None
    session_settle_seconds: float = Field(default=5.0, ge=0)
    service_timeout: float = Field(default=120.0, gt=0)

    @field_validator("product_name", "company", "version", "timestamp_url")
    @classmethod
    def check_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _reject_blank(value)

    def packaging_options(self, **overrides: Any) -> PackagingOptions:
        """Build converter options from the stored product metadata."""
        values: Dict[str, Any] = {
            "icon_path": self.icon_path,
            "product_name": self.product_name,
            "company": self.company,
            "version": self.version,
            "no_console": self.no_console,
            "require_admin": self.require_admin,
            "architecture": self.architecture,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return PackagingOptions(**values)


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
    return data


def _read_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in env:
            values[name] = env[key]
    return values


def _validate_lenient(values: Dict[str, Any]) -> Settings:
    values = dict(values)
    while True:
        try:
            return Settings(**values)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"]}
            if not bad.intersection(values):
                raise ConfigurationError(f"Invalid configuration: {e}") from e
            for name in bad.intersection(values):
                logger.warning(
                    "Ignoring invalid setting %s=%r, using default", name, values.pop(name)
                )


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    lenient: bool = False,
) -> Settings:
    """Load settings from file and environment.

    Args:
        path: JSON file, defaults to ``$AUTHSIGN_CONFIG`` when set
        env: Environment mapping, defaults to ``os.environ``
        lenient: Replace invalid values with defaults instead of failing

    Raises:
        ConfigurationError: if the file is unreadable or a value is invalid
            (and ``lenient`` is false)
    """
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_ENV_VAR)
    values: Dict[str, Any] = {}
    if path:
        values.update(_read_file(Path(path)))
    values.update(_read_env(env))
    if lenient:
        return _validate_lenient(values)
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def save_settings(settings: Settings, path: Union[str, Path]) -> None:
    """Persist settings as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(settings.model_dump_json(indent=2, exclude_none=True))
