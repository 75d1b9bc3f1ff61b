"""Tests for aws_saml_login.saml_request."""

from __future__ import annotations

import base64
import urllib.parse
import xml.etree.ElementTree as ET
import zlib
from datetime import datetime, timezone

import pytest

from aws_saml_login.errors import ConfigIncomplete
from aws_saml_login.profiles import Profile
from aws_saml_login.saml_request import (
    ACS_URL_CHINA,
    ACS_URL_DEFAULT,
    ACS_URL_US_GOV,
    assertion_consumer_url,
    build_login_url,
    encode_request,
)

from .conftest import APP_ID_URI, TENANT_ID

SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
ASSERTION_NS = "urn:oasis:names:tc:SAML:2.0:assertion"


def _profile(region: str | None = None) -> Profile:
    return Profile(azure_tenant_id=TENANT_ID, azure_app_id_uri=APP_ID_URI, region=region)


def _decode_request(url: str) -> ET.Element:
    """Undo percent-encoding, base64 and raw DEFLATE on the SAMLRequest parameter."""
    query = urllib.parse.urlparse(url).query
    encoded = urllib.parse.parse_qs(query)["SAMLRequest"][0]
    xml = zlib.decompress(base64.b64decode(encoded), -zlib.MAX_WBITS).decode("utf-8")
    return ET.fromstring(xml)


class TestAssertionConsumerUrl:
    @pytest.mark.parametrize("region", ["us-gov-west-1", "us-gov-east-1"])
    def test_gov_cloud(self, region: str) -> None:
        assert assertion_consumer_url(region) == ACS_URL_US_GOV

    @pytest.mark.parametrize("region", ["cn-north-1", "cn-northwest-1"])
    def test_china(self, region: str) -> None:
        assert assertion_consumer_url(region) == ACS_URL_CHINA

    @pytest.mark.parametrize("region", [None, "", "us-east-1", "ap-southeast-2", "eu-west-1"])
    def test_public_default(self, region: str | None) -> None:
        assert assertion_consumer_url(region) == ACS_URL_DEFAULT


class TestBuildLoginUrl:
    def test_url_embeds_tenant_in_path(self) -> None:
        url = build_login_url(_profile())
        parsed = urllib.parse.urlparse(url)
        assert parsed.scheme == "https"
        assert parsed.netloc == "login.microsoftonline.com"
        assert parsed.path == f"/{TENANT_ID}/saml2"

    @pytest.mark.parametrize(
        "region,expected",
        [
            ("us-gov-west-1", ACS_URL_US_GOV),
            ("cn-north-1", ACS_URL_CHINA),
            ("eu-central-1", ACS_URL_DEFAULT),
            (None, ACS_URL_DEFAULT),
        ],
    )
    def test_request_targets_region_endpoint(self, region: str | None, expected: str) -> None:
        root = _decode_request(build_login_url(_profile(region)))
        assert root.get("AssertionConsumerServiceURL") == expected

    def test_request_contents(self) -> None:
        now = datetime(2024, 5, 6, 7, 8, 9, 999999, tzinfo=timezone.utc)
        root = _decode_request(build_login_url(_profile(), now=now, request_id="id-fixed"))
        assert root.tag == f"{{{SAMLP_NS}}}AuthnRequest"
        assert root.get("ID") == "id-fixed"
        assert root.get("Version") == "2.0"
        assert root.get("IssueInstant") == "2024-05-06T07:08:09Z"
        assert root.get("IsPassive") == "false"
        issuer = root.find(f"{{{ASSERTION_NS}}}Issuer")
        assert issuer is not None
        assert issuer.text == APP_ID_URI

    def test_fresh_id_on_every_call(self) -> None:
        first = _decode_request(build_login_url(_profile()))
        second = _decode_request(build_login_url(_profile()))
        assert first.get("ID") != second.get("ID")
        assert first.get("ID", "").startswith("id")

    def test_issue_instant_defaults_to_now(self) -> None:
        root = _decode_request(build_login_url(_profile()))
        issued = datetime.strptime(root.get("IssueInstant", ""), "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
        assert abs((datetime.now(timezone.utc) - issued).total_seconds()) < 60

    def test_missing_app_id_uri(self) -> None:
        with pytest.raises(ConfigIncomplete, match="azure_app_id_uri"):
            build_login_url(Profile(azure_tenant_id=TENANT_ID))

    def test_missing_tenant_id(self) -> None:
        with pytest.raises(ConfigIncomplete, match="azure_tenant_id"):
            build_login_url(Profile(azure_app_id_uri=APP_ID_URI))


class TestEncodeRequest:
    def test_is_raw_deflate_base64(self) -> None:
        encoded = encode_request("<x/>")
        assert zlib.decompress(base64.b64decode(encoded), -zlib.MAX_WBITS) == b"<x/>"

    def test_query_value_is_percent_encoded(self) -> None:
        url = build_login_url(_profile())
        raw_value = url.split("SAMLRequest=", 1)[1]
        assert not set("+/=") & set(raw_value)
