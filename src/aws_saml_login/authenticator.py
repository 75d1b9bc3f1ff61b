"""Contract for the component that signs the user in and returns an assertion."""

from __future__ import annotations

from typing import Protocol


class Authenticator(Protocol):
    """Drives the IdP sign-in for a login URL and returns the posted assertion.

    Implementations must give up after *timeout* seconds and raise
    :class:`~aws_saml_login.errors.AuthenticationTimeout` rather than block.
    Other failures are reported as
    :class:`~aws_saml_login.errors.IdentityProviderError`, or
    :class:`~aws_saml_login.errors.AssertionExtractionError` when sign-in
    completed but the assertion could not be captured.

    When *reuse_session* is true the implementation keeps browser state on
    disk so the user is not asked to sign in on every run.
    """

    def authenticate(self, login_url: str, *, timeout: float, reuse_session: bool) -> str:
        ...
