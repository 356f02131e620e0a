"""
Configuration for the data import client.

Two layers:
- ImporterConfig: where and how to talk to the service (deployment settings)
- ImportRequest values: what to upload, read from the XML config file and
  overridden by environment variables and CLI flags

XML config file layout:

    <config>
        <organizationName>acme</organizationName>
        <userName>jane@example.com</userName>
        <password>secret</password>
        <dataPath>data.csv</dataPath>
        <xmlPath>data.xml</xmlPath>
        <action>overwrite</action>
        <runAsBackground>true</runAsBackground>
        <notifyByEmail>false</notifyByEmail>
        <addAllUsers>false</addAllUsers>
    </config>
"""
from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError
from .models import SESSION_COOKIE_NAME, ImportAction, ImportRequest
from .services.authenticator import DEFAULT_API_PATH
from .services.resolver import DEFAULT_DIRECTORY_DOMAIN, DEFAULT_LOOKUP_PATH

DEFAULT_CONFIG_FILE = "SpatialKeyUploadConfig.xml"
DEFAULT_TIMEOUT = 300.0

ENV_PREFIX = "DATAIMPORT_"

# XML element -> ImportRequest field
XML_FIELDS = {
    "organizationName": "organization_id",
    "userName": "user_name",
    "password": "password",
    "dataPath": "data_path",
    "xmlPath": "descriptor_path",
    "action": "action",
    "runAsBackground": "run_in_background",
    "notifyByEmail": "notify_by_email",
    "addAllUsers": "share_with_all_users",
}

# Environment variable suffix -> ImportRequest field
ENV_FIELDS = {
    "ORGANIZATION": "organization_id",
    "USER": "user_name",
    "PASSWORD": "password",
    "DATA_PATH": "data_path",
    "DESCRIPTOR_PATH": "descriptor_path",
    "ACTION": "action",
}

REQUIRED_FIELDS = ("organization_id", "user_name", "password", "data_path", "descriptor_path")
BOOL_FIELDS = ("run_in_background", "notify_by_email", "share_with_all_users")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass(frozen=True)
class ImporterConfig:
    """Immutable deployment settings for the import client."""
    directory_domain: str = DEFAULT_DIRECTORY_DOMAIN
    lookup_path: str = DEFAULT_LOOKUP_PATH
    api_path: str = DEFAULT_API_PATH
    upload_url: Optional[str] = None
    cookie_name: str = SESSION_COOKIE_NAME
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    temp_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ImporterConfig":
        """Build settings from DATAIMPORT_* variables; explicit overrides win."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        if env.get(f"{ENV_PREFIX}DOMAIN"):
            values["directory_domain"] = env[f"{ENV_PREFIX}DOMAIN"]
        if env.get(f"{ENV_PREFIX}LOOKUP_PATH"):
            values["lookup_path"] = env[f"{ENV_PREFIX}LOOKUP_PATH"]
        if env.get(f"{ENV_PREFIX}API_PATH"):
            values["api_path"] = env[f"{ENV_PREFIX}API_PATH"]
        if env.get(f"{ENV_PREFIX}UPLOAD_URL"):
            values["upload_url"] = env[f"{ENV_PREFIX}UPLOAD_URL"]
        if env.get(f"{ENV_PREFIX}TIMEOUT"):
            values["timeout"] = _parse_timeout(env[f"{ENV_PREFIX}TIMEOUT"])
        if env.get(f"{ENV_PREFIX}VERIFY_SSL"):
            values["verify_ssl"] = parse_bool(env[f"{ENV_PREFIX}VERIFY_SSL"])
        if env.get(f"{ENV_PREFIX}TEMP_DIR"):
            values["temp_dir"] = Path(env[f"{ENV_PREFIX}TEMP_DIR"])

        values.update({key: value for key, value in overrides.items() if value is not None})
        if "timeout" in values:
            values["timeout"] = _parse_timeout(values["timeout"])
        return cls(**values)


def _parse_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout: {value!r}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Timeout must be positive, got {timeout}")
    return timeout


def read_config_file(path: Path) -> Dict[str, Any]:
    """
    Read request values from an XML config file.

    Relative data paths are resolved against the config file's directory.
    Elements that are absent are simply not returned.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"config file not found: {path}")

    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as exc:
        raise ConfigurationError(f"could not parse config file {path}: {exc}") from exc

    values: Dict[str, Any] = {}
    for element, field_name in XML_FIELDS.items():
        text = root.findtext(element)
        if text is None:
            continue
        text = text.strip()
        if field_name in ("data_path", "descriptor_path"):
            file_path = Path(text).expanduser()
            if not file_path.is_absolute():
                file_path = path.parent / file_path
            values[field_name] = file_path
        elif field_name in BOOL_FIELDS:
            values[field_name] = parse_bool(text)
        else:
            values[field_name] = text
    return values


def read_env_values(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for suffix, field_name in ENV_FIELDS.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value:
            values[field_name] = value
    return values


def build_request(*layers: Mapping[str, Any]) -> ImportRequest:
    """
    Merge value layers (later layers win, None values skipped) into an ImportRequest.

    Raises:
        ConfigurationError: a required value is missing or the action is invalid
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        merged.update({key: value for key, value in layer.items() if value is not None})

    missing = [name for name in REQUIRED_FIELDS if not merged.get(name)]
    if missing:
        raise ConfigurationError(f"missing required configuration: {', '.join(missing)}")

    for name in BOOL_FIELDS:
        if name in merged:
            merged[name] = parse_bool(merged[name])

    try:
        merged["action"] = ImportAction.parse(merged.get("action") or ImportAction.OVERWRITE)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    return ImportRequest(**{key: merged[key] for key in merged if key in XML_FIELDS.values()})


def load_config_file(path: Path, environ: Optional[Mapping[str, str]] = None) -> ImportRequest:
    """Load an ImportRequest from an XML config file, with environment overrides."""
    return build_request(read_config_file(path), read_env_values(environ))
