"""Credential store backed by the AWS shared credentials file.

Sections are keyed by bare profile name (no ``profile `` prefix, unlike
the config file).  Broker-issued entries carry an ``aws_expiration``
timestamp written as ISO-8601 UTC with millisecond precision, e.g.
``2024-01-02T03:04:05.678Z``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from aws_saml_login.inifile import read_sections, write_sections

logger = logging.getLogger(__name__)

_SECRET_KEYS = ("aws_access_key_id", "aws_secret_access_key", "aws_session_token")
_EXPIRATION_KEY = "aws_expiration"


def truncate_to_millis(value: datetime) -> datetime:
    """Return *value* in UTC with sub-millisecond digits dropped."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def format_timestamp(value: datetime) -> str:
    """Format *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    value = truncate_to_millis(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime (ms precision).

    Accepts any number of fractional-second digits and either ``Z`` or a
    numeric offset.  A missing offset is read as UTC.

    Raises :class:`ValueError` for anything else.
    """
    raw = text.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return truncate_to_millis(datetime.fromisoformat(raw))


@dataclass
class Credential:
    """A cached set of temporary AWS credentials.

    The three secret fields are either all set or all ``None``.
    """

    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    aws_expiration: datetime | None = None
    extra: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        present = [getattr(self, key) is not None for key in _SECRET_KEYS]
        if any(present) and not all(present):
            raise ValueError("access key, secret key and session token must be set together")
        if self.aws_expiration is not None:
            self.aws_expiration = truncate_to_millis(self.aws_expiration)

    @property
    def is_complete(self) -> bool:
        return self.aws_access_key_id is not None and self.aws_expiration is not None

    @classmethod
    def from_section(cls, section: dict[str, str]) -> Credential:
        """Build a credential from a file section.

        Raises :class:`ValueError` when the secret fields are only
        partially present or the expiration is unreadable.
        """
        values: dict[str, Any] = {}
        extra: dict[str, str] = {}
        for key, raw in section.items():
            value = raw.strip()
            if key in _SECRET_KEYS:
                if value:
                    values[key] = value.strip('"') if key == "aws_session_token" else value
            elif key == _EXPIRATION_KEY:
                if value:
                    values[key] = parse_timestamp(value)
            else:
                extra[key] = raw
        return cls(extra=extra, **values)

    def to_section(self) -> dict[str, str]:
        section: dict[str, str] = {}
        for key in _SECRET_KEYS:
            value = getattr(self, key)
            if value is not None:
                section[key] = value
        if self.aws_expiration is not None:
            section[_EXPIRATION_KEY] = format_timestamp(self.aws_expiration)
        section.update(self.extra)
        return section


def to_process_output(credential: Credential) -> dict[str, Any]:
    """Return the ``credential_process`` JSON document for *credential*."""
    if not credential.is_complete:
        raise ValueError("credential has no secrets or expiration")
    assert credential.aws_expiration is not None
    return {
        "Version": 1,
        "AccessKeyId": credential.aws_access_key_id,
        "SecretAccessKey": credential.aws_secret_access_key,
        "SessionToken": credential.aws_session_token,
        "Expiration": format_timestamp(credential.aws_expiration),
    }


class CredentialStore:
    """Reads and writes the shared credentials file.

    Sections the broker cannot represent as a :class:`Credential` (such as
    long-term keys without a session token) are kept verbatim and written
    back unless a broker-issued credential has replaced them.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._unmanaged: dict[str, dict[str, str]] = {}

    def read(self) -> dict[str, Credential]:
        credentials: dict[str, Credential] = {}
        self._unmanaged = {}
        for name, section in read_sections(self.path).items():
            try:
                credentials[name] = Credential.from_section(section)
            except ValueError as exc:
                logger.debug("Keeping credentials section %r as-is: %s", name, exc)
                self._unmanaged[name] = section
        logger.debug("Loaded %d credential(s) from %s", len(credentials), self.path)
        return credentials

    def write(self, credentials: dict[str, Credential]) -> None:
        """Rewrite the whole credentials file from *credentials*."""
        sections = {name: section for name, section in self._unmanaged.items() if name not in credentials}
        for name, credential in credentials.items():
            sections[name] = credential.to_section()
        write_sections(self.path, sections)
        logger.info("AWS credentials file %s updated", self.path)

    @staticmethod
    def get(name: str, credentials: dict[str, Credential]) -> Credential | None:
        return credentials.get(name)

    @staticmethod
    def upsert(name: str, credential: Credential, credentials: dict[str, Credential]) -> None:
        credentials[name] = credential
