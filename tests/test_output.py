"""Tests for aws_saml_login.output."""

from __future__ import annotations

import json
from datetime import timedelta

from aws_saml_login.errors import ProviderError
from aws_saml_login.login import BatchResult
from aws_saml_login.output import (
    format_batch_result,
    format_credential,
    format_remaining,
    format_response,
)

from .conftest import NOW, make_credential


class TestFormatRemaining:
    def test_hours_and_minutes(self) -> None:
        assert format_remaining(NOW + timedelta(hours=7, minutes=59, seconds=30), NOW) == "7h 59m"

    def test_minutes_only(self) -> None:
        assert format_remaining(NOW + timedelta(minutes=12), NOW) == "12m"

    def test_expired(self) -> None:
        assert format_remaining(NOW - timedelta(seconds=1), NOW) == "expired"

    def test_unknown(self) -> None:
        assert format_remaining(None, NOW) == "unknown"


class TestFormatResponse:
    def test_json_envelope(self) -> None:
        out = json.loads(format_response("error", error={"code": "X", "message": "m"}, json_mode=True))
        assert out == {"status": "error", "data": None, "error": {"code": "X", "message": "m"}}

    def test_human_error(self) -> None:
        out = format_response("error", error={"code": "PROFILE_NOT_FOUND", "message": "missing"})
        assert "Error [PROFILE_NOT_FOUND]: missing" in out
        assert "\x1b[" not in out

    def test_human_data(self) -> None:
        out = format_response("success", data={"profile": "dev"})
        assert "profile:" in out
        assert "dev" in out

    def test_bare_status(self) -> None:
        assert format_response("success") == "Status: success"


class TestFormatCredential:
    def test_json_is_credential_process_document(self) -> None:
        doc = json.loads(format_credential("dev", make_credential(), json_mode=True))
        assert doc["Version"] == 1
        assert doc["AccessKeyId"] == "ASIAEXAMPLE"
        assert doc["Expiration"] == "2024-01-02T11:04:05.678Z"

    def test_human(self) -> None:
        out = format_credential("dev", make_credential())
        assert "Credentials ready for dev" in out
        assert "2024-01-02T11:04:05.678Z" in out
        assert "secret/with+chars=" not in out


class TestFormatBatchResult:
    def _result(self) -> BatchResult:
        return BatchResult(
            succeeded={"b": make_credential()},
            failed={"a": ProviderError("ExpiredToken: late")},
            skipped=["external"],
        )

    def test_json_partial(self) -> None:
        out = json.loads(format_batch_result(self._result(), json_mode=True))
        assert out["status"] == "partial"
        assert out["data"]["succeeded"] == ["b"]
        assert out["data"]["failed"]["a"]["code"] == "PROVIDER_ERROR"
        assert out["data"]["skipped"] == ["external"]

    def test_json_success(self) -> None:
        out = json.loads(format_batch_result(BatchResult(), json_mode=True))
        assert out["status"] == "success"

    def test_table(self) -> None:
        out = format_batch_result(self._result())
        assert "PROVIDER_ERROR" in out
        assert "skipped" in out
        assert "ASIAEXAMPLE" not in out
