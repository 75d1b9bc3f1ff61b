"""Build the Azure AD sign-in URL carrying a SAML AuthnRequest.

The request is unsigned: it is deflated, base64-encoded and passed as the
``SAMLRequest`` query parameter (HTTP-Redirect binding).  A fresh request
ID and issue instant are stamped on every call because the IdP may reject
or de-duplicate identical requests.
"""

from __future__ import annotations

import base64
import logging
import urllib.parse
import uuid
import zlib
from datetime import datetime, timezone
from xml.sax.saxutils import escape, quoteattr

from aws_saml_login.errors import ConfigIncomplete
from aws_saml_login.profiles import Profile

logger = logging.getLogger(__name__)

IDP_LOGIN_URL = "https://login.microsoftonline.com/{tenant_id}/saml2"

ACS_URL_DEFAULT = "https://signin.aws.amazon.com/saml"
ACS_URL_US_GOV = "https://signin.amazonaws-us-gov.com/saml"
ACS_URL_CHINA = "https://signin.amazonaws.cn/saml"


def assertion_consumer_url(region: str | None) -> str:
    """Return the AWS sign-in endpoint the IdP should post the assertion to."""
    if region and region.startswith("us-gov"):
        return ACS_URL_US_GOV
    if region and region.startswith("cn-"):
        return ACS_URL_CHINA
    return ACS_URL_DEFAULT


def build_authn_request(
    app_id_uri: str,
    acs_url: str,
    request_id: str,
    issue_instant: datetime,
) -> str:
    instant = issue_instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return (
        '<samlp:AuthnRequest xmlns="urn:oasis:names:tc:SAML:2.0:metadata"'
        f" ID={quoteattr(request_id)}"
        ' Version="2.0"'
        f' IssueInstant="{instant}"'
        ' IsPassive="false"'
        f" AssertionConsumerServiceURL={quoteattr(acs_url)}"
        ' xmlns:samlp="urn:oasis:names:tc:SAML:2.0:protocol">'
        f'<Issuer xmlns="urn:oasis:names:tc:SAML:2.0:assertion">{escape(app_id_uri)}</Issuer>'
        '<samlp:NameIDPolicy Format="urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"/>'
        "</samlp:AuthnRequest>"
    )


def encode_request(xml: str) -> str:
    """Raw-deflate and base64-encode *xml* (not yet URL-quoted)."""
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)
    deflated = compressor.compress(xml.encode("utf-8")) + compressor.flush()
    return base64.b64encode(deflated).decode("ascii")


def build_login_url(
    profile: Profile,
    *,
    now: datetime | None = None,
    request_id: str | None = None,
) -> str:
    """Return the IdP sign-in URL for *profile*.

    Raises:
        ConfigIncomplete: If the tenant ID or app ID URI is not set.
    """
    if not profile.azure_app_id_uri:
        raise ConfigIncomplete("azure_app_id_uri is not set for this profile")
    if not profile.azure_tenant_id:
        raise ConfigIncomplete("azure_tenant_id is not set for this profile")

    acs_url = assertion_consumer_url(profile.region)
    xml = build_authn_request(
        profile.azure_app_id_uri,
        acs_url,
        request_id or f"id{uuid.uuid4()}",
        now or datetime.now(timezone.utc),
    )
    logger.debug("AuthnRequest for %s: %s", acs_url, xml)

    params = urllib.parse.urlencode({"SAMLRequest": encode_request(xml)})
    tenant = urllib.parse.quote(profile.azure_tenant_id, safe="")
    return f"{IDP_LOGIN_URL.format(tenant_id=tenant)}?{params}"
