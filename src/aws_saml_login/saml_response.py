"""Extract AWS roles from a SAML assertion.

The assertion is treated as untrusted structured data: it is decoded and
parsed, never signature-checked (STS validates it during the exchange).
"""

from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from aws_saml_login.errors import MalformedAssertion

logger = logging.getLogger(__name__)

ROLE_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/Role"
SAML_ASSERTION_NS = "urn:oasis:names:tc:SAML:2.0:assertion"

_ROLE_MARKER = ":role/"


@dataclass(frozen=True)
class Role:
    """An assumable role and the SAML provider that trusts the IdP."""

    role_arn: str
    principal_arn: str

    def __str__(self) -> str:
        return f"{self.role_arn} ({self.principal_arn})"


def decode_assertion(assertion: str) -> str:
    """Base64-decode *assertion* into its XML text."""
    try:
        return base64.b64decode(assertion).decode("utf-8")
    except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
        raise MalformedAssertion(f"Failed to decode SAML response: {exc}", cause=exc) from exc


def split_role_value(value: str) -> Role:
    """Split a ``role,principal`` attribute value in either order."""
    parts = [part.strip() for part in value.split(",")]
    if len(parts) < 2:
        raise MalformedAssertion(f"Malformed role data: {value!r}")

    role_arns = [p for p in parts if _ROLE_MARKER in p]
    principal_arns = [p for p in parts if _ROLE_MARKER not in p]
    if len(role_arns) != 1 or len(principal_arns) != 1:
        raise MalformedAssertion(f"Expected one role ARN and one principal ARN in {value!r}")
    return Role(role_arn=role_arns[0], principal_arn=principal_arns[0])


def parse_roles(assertion: str) -> list[Role]:
    """Return the roles offered by *assertion*, in document order."""
    xml_text = decode_assertion(assertion)
    if "<!doctype" in xml_text.lower():
        raise MalformedAssertion("SAML response must not contain a DOCTYPE declaration")

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MalformedAssertion(f"Failed to parse SAML response XML: {exc}", cause=exc) from exc

    roles: list[Role] = []
    for attr_elem in root.iter(f"{{{SAML_ASSERTION_NS}}}Attribute"):
        if attr_elem.get("Name") != ROLE_ATTRIBUTE:
            continue
        for val_elem in attr_elem.iter(f"{{{SAML_ASSERTION_NS}}}AttributeValue"):
            roles.append(split_role_value(val_elem.text or ""))

    logger.debug("SAML response offers %d role(s)", len(roles))
    return roles
