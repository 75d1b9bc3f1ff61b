"""Expiration-aware reuse of cached credentials."""

from __future__ import annotations

from datetime import datetime, timedelta

from aws_saml_login.credentials import Credential

# Cached credentials are refreshed once less than this remains.
REFRESH_BUFFER = timedelta(minutes=11)


def is_about_to_expire(credential: Credential, now: datetime) -> bool:
    """True when *credential* has no expiration or expires within the buffer."""
    if credential.aws_expiration is None:
        return True
    return credential.aws_expiration - now < REFRESH_BUFFER


def should_refresh(credential: Credential | None, now: datetime, force_refresh: bool = False) -> bool:
    """Decide whether a fresh federation round-trip is needed."""
    if force_refresh or credential is None:
        return True
    if credential.aws_access_key_id is None:
        return True
    return is_about_to_expire(credential, now)
