"""Profile store backed by the AWS CLI config file (``~/.aws/config``).

Each profile lives in a ``[profile <name>]`` section (``[default]`` for
the default profile).  The broker only reads profiles; ``configure`` is
the one writer.  Unrecognised keys and non-profile sections (for example
``[sso-session ...]``) survive a rewrite untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from aws_saml_login.errors import ProfileNotFound
from aws_saml_login.inifile import read_sections, write_sections

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
_PROFILE_PREFIX = "profile "

MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 12

# Values offered by ``configure`` for fields the user has never set.
# The broker itself never falls back to these.
PROFILE_DEFAULTS: dict[str, Any] = {
    "azure_app_id_uri": "https://signin.aws.amazon.com/saml",
    "azure_default_duration_hours": 8,
    "azure_default_remember_me": True,
    "region": "ap-southeast-2",
}


@dataclass
class Profile:
    """One federation profile.  ``None`` means the key is not set."""

    azure_tenant_id: str | None = None
    azure_app_id_uri: str | None = None
    azure_default_username: str | None = None
    azure_default_role_arn: str | None = None
    azure_default_duration_hours: int | None = None
    azure_default_remember_me: bool | None = None
    region: str | None = None
    credential_process: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def is_externally_managed(self) -> bool:
        """True when credentials come from an outside ``credential_process``."""
        return bool(self.credential_process)

    @classmethod
    def from_section(cls, name: str, section: dict[str, str]) -> Profile:
        known = {f.name for f in fields(cls)} - {"extra"}
        values: dict[str, Any] = {}
        extra: dict[str, str] = {}
        for key, raw in section.items():
            if key not in known:
                extra[key] = raw
                continue
            value = raw.strip()
            if not value:
                continue
            if key == "azure_default_duration_hours":
                values[key] = _parse_duration(name, value)
            elif key == "azure_default_remember_me":
                values[key] = _parse_flag(name, key, value)
            else:
                values[key] = value
        return cls(extra=extra, **values)

    def to_section(self) -> dict[str, str]:
        section: dict[str, str] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, bool):
                section[f.name] = "true" if value else "false"
            else:
                section[f.name] = str(value)
        section.update(self.extra)
        return section


def _parse_duration(name: str, value: str) -> int | None:
    try:
        hours = int(value)
    except ValueError:
        logger.warning("Profile %r: azure_default_duration_hours %r is not an integer; ignoring", name, value)
        return None
    if not MIN_DURATION_HOURS <= hours <= MAX_DURATION_HOURS:
        logger.warning(
            "Profile %r: azure_default_duration_hours %d is outside %d-%d; ignoring",
            name,
            hours,
            MIN_DURATION_HOURS,
            MAX_DURATION_HOURS,
        )
        return None
    return hours


def _parse_flag(name: str, key: str, value: str) -> bool | None:
    if value == "true":
        return True
    if value == "false":
        return False
    logger.warning("Profile %r: %s must be 'true' or 'false', got %r; ignoring", name, key, value)
    return None


def section_name(name: str) -> str:
    """Return the config-file section for profile *name*."""
    if name == DEFAULT_PROFILE or name.startswith(_PROFILE_PREFIX):
        return name
    return f"{_PROFILE_PREFIX}{name}"


def profile_name(section: str) -> str | None:
    """Return the profile name for *section*, or ``None`` if it is not a profile."""
    if section == DEFAULT_PROFILE:
        return section
    if section.startswith(_PROFILE_PREFIX):
        return section[len(_PROFILE_PREFIX):].strip()
    return None


class ProfileStore:
    """Reads and writes profiles in an AWS config file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._other_sections: dict[str, dict[str, str]] = {}

    def read(self) -> dict[str, Profile]:
        """Load every profile keyed by bare profile name."""
        profiles: dict[str, Profile] = {}
        self._other_sections = {}
        for section, values in read_sections(self.path).items():
            name = profile_name(section)
            if name is None:
                self._other_sections[section] = values
                continue
            profiles[name] = Profile.from_section(name, values)
        logger.debug("Loaded %d profile(s) from %s", len(profiles), self.path)
        return profiles

    def write(self, profiles: dict[str, Profile]) -> None:
        """Rewrite the whole config file from *profiles*."""
        sections = dict(self._other_sections)
        for name, profile in profiles.items():
            sections[section_name(name)] = profile.to_section()
        write_sections(self.path, sections)
        logger.info("AWS config file %s updated", self.path)

    @staticmethod
    def get(name: str, profiles: dict[str, Profile]) -> Profile:
        try:
            return profiles[name]
        except KeyError:
            raise ProfileNotFound(
                f"Profile {name!r} not found in the AWS config file. "
                f"Run 'aws-saml-login configure --profile {name}' to create it."
            ) from None

    @staticmethod
    def upsert(name: str, profile: Profile, profiles: dict[str, Profile]) -> None:
        profiles[name] = profile
