"""Shared fixtures for the aws-saml-login test suite."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Sequence

import pytest

from aws_saml_login.credentials import Credential
from aws_saml_login.errors import BrokerError
from aws_saml_login.saml_response import ROLE_ATTRIBUTE, Role


# ---------------------------------------------------------------------------
# Constants reused across tests
# ---------------------------------------------------------------------------

NOW = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

ROLE_FOO = "arn:aws:iam::123:role/Foo"
ROLE_BAZ = "arn:aws:iam::123:role/Baz"
PRINCIPAL_BAR = "arn:aws:iam::123:saml-provider/Bar"

TENANT_ID = "11111111-2222-3333-4444-555555555555"
APP_ID_URI = "https://signin.aws.amazon.com/saml#contoso"


# ---------------------------------------------------------------------------
# SAML helpers
# ---------------------------------------------------------------------------


def build_assertion(role_values: Sequence[str], *, attribute_name: str = ROLE_ATTRIBUTE) -> str:
    """Build a minimal base64-encoded SAML Response carrying *role_values*."""
    values = "".join(f"<saml:AttributeValue>{v}</saml:AttributeValue>" for v in role_values)
    xml = (
        '<samlp:Response xmlns:samlp="urn:oasis:names:tc:SAML:2.0:protocol"'
        ' xmlns:saml="urn:oasis:names:tc:SAML:2.0:assertion">'
        "<saml:Assertion>"
        "<saml:AttributeStatement>"
        '<saml:Attribute Name="http://schemas.microsoft.com/identity/claims/displayname">'
        "<saml:AttributeValue>Alice</saml:AttributeValue>"
        "</saml:Attribute>"
        f'<saml:Attribute Name="{attribute_name}">{values}</saml:Attribute>'
        "</saml:AttributeStatement>"
        "</saml:Assertion>"
        "</samlp:Response>"
    )
    return base64.b64encode(xml.encode("utf-8")).decode("ascii")


def make_credential(expires_in: timedelta = timedelta(hours=8), *, key: str = "ASIAEXAMPLE") -> Credential:
    return Credential(
        aws_access_key_id=key,
        aws_secret_access_key="secret/with+chars=",
        aws_session_token="FwoGZXIvYXdzEJr//////////token==",
        aws_expiration=NOW + expires_in,
    )


# ---------------------------------------------------------------------------
# Fakes for the orchestrator's collaborators
# ---------------------------------------------------------------------------


class FakeAuthenticator:
    """Returns queued assertions (or raises queued errors) and records calls."""

    def __init__(self, *results: str | BrokerError) -> None:
        self.results = list(results)
        self.calls: list[dict[str, object]] = []

    def authenticate(self, login_url: str, *, timeout: float, reuse_session: bool) -> str:
        self.calls.append({"login_url": login_url, "timeout": timeout, "reuse_session": reuse_session})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BrokerError):
            raise result
        return result


class FakeExchange:
    """Token exchange returning a fixed credential, or raising *error*."""

    def __init__(self, credential: Credential | None = None, error: BrokerError | None = None) -> None:
        self.credential = credential or make_credential()
        self.error = error
        self.calls: list[tuple[Role, str, int]] = []

    def assume_role_with_saml(self, role: Role, assertion: str, duration_hours: int) -> Credential:
        self.calls.append((role, assertion, duration_hours))
        if self.error is not None:
            raise self.error
        return self.credential


class FakePrompter:
    """Answers prompts from fixed values and counts calls."""

    def __init__(self, choice: int = 0, answer: str = "4") -> None:
        self.choice = choice
        self.answer = answer
        self.choose_calls: list[tuple[str, list[str], int]] = []
        self.ask_calls: list[tuple[str, str | None]] = []

    def choose(self, prompt: str, options: Sequence[str], default: int = 0) -> int:
        self.choose_calls.append((prompt, list(options), default))
        return self.choice

    def ask(self, prompt: str, default: str | None, validate: Callable[[str], bool]) -> str:
        self.ask_calls.append((prompt, default))
        return self.answer


class ExplodingPrompter:
    """Fails the test if the broker prompts at all."""

    def choose(self, prompt: str, options: Sequence[str], default: int = 0) -> int:
        raise AssertionError("choose() must not be called")

    def ask(self, prompt: str, default: str | None, validate: Callable[[str], bool]) -> str:
        raise AssertionError("ask() must not be called")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def single_role_assertion() -> str:
    return build_assertion([f"{ROLE_FOO},{PRINCIPAL_BAR}"])


@pytest.fixture()
def two_role_assertion() -> str:
    return build_assertion([f"{ROLE_FOO},{PRINCIPAL_BAR}", f"{PRINCIPAL_BAR},{ROLE_BAZ}"])


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """An AWS config file with two SAML profiles and one credential_process profile."""
    path = tmp_path / "config"
    path.write_text(
        "[default]\n"
        f"azure_tenant_id = {TENANT_ID}\n"
        f"azure_app_id_uri = {APP_ID_URI}\n"
        "azure_default_duration_hours = 8\n"
        "azure_default_remember_me = true\n"
        "region = ap-southeast-2\n"
        "\n"
        "[profile dev]\n"
        f"azure_tenant_id = {TENANT_ID}\n"
        f"azure_app_id_uri = {APP_ID_URI}\n"
        f"azure_default_role_arn = {ROLE_BAZ}\n"
        "azure_default_duration_hours = 2\n"
        "azure_default_remember_me = false\n"
        "region = us-gov-west-1\n"
        "output = json\n"
        "\n"
        "[profile external]\n"
        "credential_process = aws-saml-login login --profile dev --json\n"
        "\n"
        "[sso-session corp]\n"
        "sso_start_url = https://corp.awsapps.com/start\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def credentials_file(tmp_path: Path) -> Path:
    """A credentials file with one broker entry and one long-term key pair."""
    path = tmp_path / "credentials"
    path.write_text(
        "[default]\n"
        "aws_access_key_id = ASIACACHED\n"
        "aws_secret_access_key = cachedsecret\n"
        "aws_session_token = cachedtoken\n"
        "aws_expiration = 2024-01-02T11:04:05.678Z\n"
        "\n"
        "[static]\n"
        "aws_access_key_id = AKIASTATIC\n"
        "aws_secret_access_key = staticsecret\n",
        encoding="utf-8",
    )
    return path
