"""Per-profile and batch login.

:class:`LoginOrchestrator` runs the federation pipeline for a profile::

    cache check -> login URL -> authenticator -> parse roles
        -> pick role/duration -> STS exchange -> credentials file

It owns the in-memory credential map and is the only writer of the
credentials file, which it rewrites in full after every successful
federation.  Profiles are processed one at a time: with session reuse the
authenticator shares one browser profile directory on disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

from aws_saml_login import cache
from aws_saml_login.authenticator import Authenticator
from aws_saml_login.credentials import Credential, CredentialStore
from aws_saml_login.errors import AssertionExtractionError, BrokerError
from aws_saml_login.profiles import Profile, ProfileStore
from aws_saml_login.resolver import Prompter, resolve_role_and_duration
from aws_saml_login.saml_request import build_login_url
from aws_saml_login.saml_response import Role, parse_roles

logger = logging.getLogger(__name__)


class TokenExchange(Protocol):
    def assume_role_with_saml(self, role: Role, assertion: str, duration_hours: int) -> Credential:
        ...


@dataclass
class BatchResult:
    """Outcome of :meth:`LoginOrchestrator.login_all`."""

    succeeded: dict[str, Credential] = field(default_factory=dict)
    failed: dict[str, BrokerError] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, object]:
        return {
            "succeeded": sorted(self.succeeded),
            "failed": {
                name: {"code": exc.code, "message": str(exc)}
                for name, exc in sorted(self.failed.items())
            },
            "skipped": sorted(self.skipped),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoginOrchestrator:
    """Sequences federation for one profile or for every profile.

    Args:
        profiles: Profiles keyed by bare name.
        credentials: Cached credentials keyed by the same names.  The
            orchestrator updates this map in place; read it back through
            :attr:`credentials`.
        authenticator: Signs the user in and returns the assertion.
        exchange_factory: Returns a token exchange for a region (``None``
            for the default endpoint).
        store: Where the credential map is persisted.
        prompter: Interactive answers; ``None`` disables prompting.
        login_timeout: Seconds the authenticator may take.
        extraction_retries: Extra sign-in attempts after an
            :class:`AssertionExtractionError`.
        clock: Current time as an aware UTC datetime.
    """

    def __init__(
        self,
        profiles: dict[str, Profile],
        credentials: dict[str, Credential],
        *,
        authenticator: Authenticator,
        exchange_factory: Callable[[str | None], TokenExchange],
        store: CredentialStore,
        prompter: Prompter | None = None,
        login_timeout: float = 100,
        extraction_retries: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.profiles = profiles
        self._credentials = credentials
        self.authenticator = authenticator
        self.exchange_factory = exchange_factory
        self.store = store
        self.prompter = prompter
        self.login_timeout = login_timeout
        self.extraction_retries = extraction_retries
        self.clock = clock

    @property
    def credentials(self) -> dict[str, Credential]:
        return self._credentials

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _sign_in(self, profile: Profile) -> str:
        """Run the authenticator, rebuilding the request on extraction races."""
        attempt = 0
        while True:
            attempt += 1
            login_url = build_login_url(profile)
            try:
                return self.authenticator.authenticate(
                    login_url,
                    timeout=self.login_timeout,
                    reuse_session=profile.azure_default_remember_me is True,
                )
            except AssertionExtractionError as exc:
                if attempt > self.extraction_retries:
                    raise
                logger.warning("Could not capture the SAML response (%s); retrying sign-in", exc)

    def _federate(self, name: str, profile: Profile, interactive_allowed: bool) -> Credential:
        assertion = self._sign_in(profile)
        roles = parse_roles(assertion)
        role, duration_hours = resolve_role_and_duration(
            roles,
            interactive_allowed=interactive_allowed,
            preferred_role_arn=profile.azure_default_role_arn,
            preferred_duration=profile.azure_default_duration_hours,
            prompter=self.prompter if interactive_allowed else None,
        )
        exchange = self.exchange_factory(profile.region)
        credential = exchange.assume_role_with_saml(role, assertion, duration_hours)
        logger.info("Assumed %s for profile %s", role.role_arn, name)
        return credential

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def login_one(
        self,
        name: str,
        force_refresh: bool = False,
        interactive_allowed: bool = True,
    ) -> Credential:
        """Return valid credentials for profile *name*.

        Cached credentials are reused unless *force_refresh* is set or they
        expire within :data:`cache.REFRESH_BUFFER`.  Errors propagate
        unchanged.
        """
        cached = CredentialStore.get(name, self._credentials)
        if not cache.should_refresh(cached, self.clock(), force_refresh):
            assert cached is not None
            logger.debug("Reusing cached credentials for profile %s", name)
            return cached

        profile = ProfileStore.get(name, self.profiles)
        logger.info("Logging into profile: %s", name)

        credential = self._federate(name, profile, interactive_allowed)
        CredentialStore.upsert(name, credential, self._credentials)
        self.store.write(self._credentials)
        return credential

    def login_all(self, force_refresh: bool = False) -> BatchResult:
        """Log into every profile not backed by a ``credential_process``.

        Runs without prompting.  A failure is logged and recorded in the
        result; the remaining profiles are still attempted.  An exception
        that is not a :class:`BrokerError` is recorded as a plain
        ``BrokerError`` wrapping it.
        """
        result = BatchResult()
        for name in sorted(self.profiles):
            if self.profiles[name].is_externally_managed:
                logger.debug("Skipping profile %s: uses credential_process", name)
                result.skipped.append(name)
                continue
            try:
                result.succeeded[name] = self.login_one(name, force_refresh, interactive_allowed=False)
            except BrokerError as exc:
                logger.error("Login failed for profile %s [%s]: %s", name, exc.code, exc)
                result.failed[name] = exc
            except Exception as exc:
                logger.error("Login failed for profile %s: unexpected %s: %s", name, type(exc).__name__, exc)
                logger.debug("Traceback for profile %s", name, exc_info=True)
                result.failed[name] = BrokerError(f"Unexpected {type(exc).__name__}: {exc}", cause=exc)
        return result
