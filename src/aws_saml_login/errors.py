"""Exception hierarchy for the SAML credential broker.

Every failure the broker can report is a :class:`BrokerError` carrying a
machine-readable ``code`` (mapped to a process exit code by
:mod:`aws_saml_login.exit_codes`) and a ``retryable`` flag telling the
caller whether running the same login again may succeed without changing
any configuration.
"""

from __future__ import annotations


class BrokerError(Exception):
    """Base exception for all broker errors."""

    code = "BROKER_ERROR"
    retryable = False

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigIncomplete(BrokerError):
    """A profile is missing a field required for federation."""

    code = "CONFIG_INCOMPLETE"


class ProfileNotFound(BrokerError):
    """The named profile does not exist in the profile store."""

    code = "PROFILE_NOT_FOUND"


class StoreIOError(BrokerError):
    """Reading or writing a persisted store file failed."""

    code = "STORE_IO_ERROR"


# ---------------------------------------------------------------------------
# Assertion / role selection
# ---------------------------------------------------------------------------


class MalformedAssertion(BrokerError):
    """The SAML assertion could not be decoded, parsed, or interpreted."""

    code = "MALFORMED_ASSERTION"


class NoRolesAvailable(BrokerError):
    """The assertion carried no AWS roles."""

    code = "NO_ROLES_AVAILABLE"


class AmbiguousRole(BrokerError):
    """Several roles are available and none could be picked without a prompt."""

    code = "AMBIGUOUS_ROLE"


class InvalidSelection(BrokerError):
    """An interactive answer failed validation."""

    code = "INVALID_SELECTION"


# ---------------------------------------------------------------------------
# Authenticator
# ---------------------------------------------------------------------------


class AuthenticatorError(BrokerError):
    """Base class for failures reported by an authenticator."""

    code = "AUTHENTICATOR_ERROR"
    retryable = True


class IdentityProviderError(AuthenticatorError):
    """The identity provider rejected or aborted the sign-in."""

    code = "IDENTITY_PROVIDER_ERROR"


class AuthenticationTimeout(AuthenticatorError):
    """No assertion was produced within the authenticator's time limit."""

    code = "TIMEOUT"


class AssertionExtractionError(AuthenticatorError):
    """The sign-in finished but the posted assertion was not captured."""

    code = "EXTRACTION_RACE"


# ---------------------------------------------------------------------------
# Token exchange
# ---------------------------------------------------------------------------


class ProviderError(BrokerError):
    """The security token service rejected the exchange or was unreachable.

    *provider_code* and the message are the provider's own, unmodified.
    """

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        provider_code: str | None = None,
        http_status: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.provider_code = provider_code
        self.http_status = http_status


class IncompleteCredentialResponse(BrokerError):
    """The token service answered successfully but omitted a credential field."""

    code = "INCOMPLETE_CREDENTIAL_RESPONSE"
