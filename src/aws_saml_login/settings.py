"""Tool settings for aws-saml-login.

Settings are resolved with a three-tier precedence:

    1. Explicit overrides (e.g. from CLI flags).
    2. Environment variables (``AWS_CONFIG_FILE``,
       ``AWS_SHARED_CREDENTIALS_FILE``, ``AWS_SAML_LOGIN_*``).
    3. The YAML settings file (``~/.aws-saml-login/config.yaml``, or the
       path in ``AWS_SAML_LOGIN_SETTINGS``).

Profile data itself lives in the AWS config file, not here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "config_file": "~/.aws/config",
    "credentials_file": "~/.aws/credentials",
    "login_timeout": 100,
    "sts_timeout": 30,
    "sts_retries": 3,
    "extraction_retries": 1,
    "sandbox": True,
    "headless": False,
    "browser_data_dir": "~/.aws/chromium",
}

_ENV_VARS: dict[str, str] = {
    "config_file": "AWS_CONFIG_FILE",
    "credentials_file": "AWS_SHARED_CREDENTIALS_FILE",
    "login_timeout": "AWS_SAML_LOGIN_TIMEOUT",
    "browser_data_dir": "AWS_SAML_LOGIN_BROWSER_DATA_DIR",
}

_INT_KEYS = ("login_timeout", "sts_timeout", "sts_retries", "extraction_retries")
_PATH_KEYS = ("config_file", "credentials_file", "browser_data_dir")

PROFILE_ENV_VAR = "AWS_PROFILE"


def get_default_settings_path() -> Path:
    """Return the settings file path (``~/.aws-saml-login/config.yaml``)."""
    env_path = os.environ.get("AWS_SAML_LOGIN_SETTINGS")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".aws-saml-login" / "config.yaml"


def _load_settings_file(path: Path) -> dict[str, Any]:
    """Read and parse the YAML settings file; return ``{}`` on any failure."""
    if not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        logger.warning("Settings file %s has invalid YAML, ignoring it: %s", path, exc)
        return {}
    except OSError as exc:
        logger.warning("Could not read settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    unknown = set(data) - set(DEFAULTS)
    for key in sorted(unknown):
        logger.warning("Settings file %s contains unknown key %r", path, key)
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_settings(
    settings_path: str | Path | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """Resolve settings from defaults, the YAML file, env vars and *overrides*.

    ``None`` overrides are ignored so CLI options can be passed straight
    through.  Path values are expanded; integer values are coerced.
    """
    settings: dict[str, Any] = dict(DEFAULTS)

    path = Path(settings_path) if settings_path else get_default_settings_path()
    for key, value in _load_settings_file(path).items():
        if key in DEFAULTS and value is not None:
            settings[key] = value

    for key, env_var in _ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            settings[key] = env_value

    for key, value in overrides.items():
        if value is not None:
            settings[key] = value

    for key in _PATH_KEYS:
        settings[key] = Path(str(settings[key])).expanduser()
    for key in _INT_KEYS:
        settings[key] = int(settings[key])
    settings["sandbox"] = _as_bool(settings["sandbox"])
    settings["headless"] = _as_bool(settings["headless"])

    return settings


def validate_settings(settings: dict[str, Any]) -> tuple[bool, str | None]:
    """Validate resolved settings.

    Returns ``(True, None)`` when valid, or ``(False, error_message)``
    describing the first problem found.
    """
    if settings.get("login_timeout", 0) <= 0:
        return False, "login_timeout must be a positive number of seconds"
    if settings.get("sts_timeout", 0) <= 0:
        return False, "sts_timeout must be a positive number of seconds"
    if settings.get("sts_retries", 0) < 1:
        return False, "sts_retries must be at least 1"
    if settings.get("extraction_retries", -1) < 0:
        return False, "extraction_retries must not be negative"
    return True, None


def resolve_profile_name(explicit: str | None) -> str:
    """Return *explicit*, else ``$AWS_PROFILE``, else ``default``."""
    if explicit:
        return explicit
    return os.environ.get(PROFILE_ENV_VAR) or "default"
