"""Runtime settings: TOML file, environment overrides and CLI overrides."""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from schemacheck.errors import ConfigurationError

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DEFAULT_PARENT_URL = (
    "https://raw.githubusercontent.com/oracle/netsuite-suitecloud-sdk/refs/heads/"
    "feature/PDPDEVTOOL-6007-schemas_for_suitecloud_tools/packages/schemas/parent-netsuite-1.0.0.json"
)

ENV_OVERRIDES = {
    "SCHEMACHECK_PARENT_URL": ("schemas", "parent_url"),
    "SCHEMACHECK_RESOURCES_DIR": ("app", "resources_dir"),
    "SCHEMACHECK_FETCH_TIMEOUT": ("fetch", "timeout_seconds"),
}


class AppSettings(BaseModel):
    resources_dir: Path = Path("resources")


class SchemaSettings(BaseModel):
    parent_url: str = Field(default=DEFAULT_PARENT_URL, min_length=1)
    duplicate_refs: str = Field(default="last", pattern=r"^(last|reject)$")


class FetchSettings(BaseModel):
    timeout_seconds: float = Field(default=5.0, gt=0)
    user_agent: str = Field(default="schemacheck/0.1", min_length=1)


class Settings(BaseModel):
    """Validated configuration for a validation run."""

    app: AppSettings = Field(default_factory=AppSettings)
    schemas: SchemaSettings = Field(default_factory=SchemaSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid settings file {path}: {exc}") from exc


def _merge(target: Dict[str, Any], section: str, key: str, value: Any) -> None:
    current = target.get(section)
    if not isinstance(current, dict):
        current = {}
        target[section] = current
    current[key] = value


def load_settings(
    path: Optional[Path] = DEFAULT_SETTINGS_PATH,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Settings:
    """Read the TOML configuration file and layer overrides on top.

    Precedence, lowest first: built-in defaults, the settings file,
    ``SCHEMACHECK_*`` environment variables, explicit ``overrides``.
    A missing settings file is not an error.
    """
    raw: Dict[str, Any] = {}
    if path is not None and path.exists():
        raw = _read_toml(path)

    env = os.environ if environ is None else environ
    for variable, (section, key) in ENV_OVERRIDES.items():
        value = env.get(variable)
        if value:
            _merge(raw, section, key, value)

    for section, values in (overrides or {}).items():
        for key, value in values.items():
            if value is not None:
                _merge(raw, section, key, value)

    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
