"""AWS STS ``AssumeRoleWithSAML`` client.

The exchange is made without any AWS credentials: the SAML assertion is
the only proof of identity, so the boto3 client is built unsigned.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
import botocore
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from aws_saml_login.credentials import Credential, truncate_to_millis
from aws_saml_login.errors import IncompleteCredentialResponse, ProviderError
from aws_saml_login.saml_response import Role

logger = logging.getLogger(__name__)

GLOBAL_ENDPOINT = "https://sts.amazonaws.com"
# Signing region for the global endpoint.
GLOBAL_REGION = "us-east-1"

_CREDENTIAL_FIELDS = ("AccessKeyId", "SecretAccessKey", "SessionToken", "Expiration")


def endpoint_for(region: str | None) -> str:
    """Return the STS endpoint for *region* (the global one if unset)."""
    if not region:
        return GLOBAL_ENDPOINT
    if region.startswith("cn-"):
        return f"https://sts.{region}.amazonaws.com.cn"
    return f"https://sts.{region}.amazonaws.com"


class StsClient:
    """Credential-less client for ``AssumeRoleWithSAML``.

    Args:
        region: Region whose STS endpoint to call; ``None`` uses the
            global endpoint.
        timeout: Connect and read timeout in seconds. Defaults to 30.
        retries: Maximum attempts for transient failures. Defaults to 3.
        client: A prebuilt boto3 STS client, used as-is.

    Example::

        client = StsClient(region="ap-southeast-2")
        credential = client.assume_role_with_saml(role, assertion, 8)
    """

    def __init__(
        self,
        region: str | None = None,
        timeout: int = 30,
        retries: int = 3,
        client: Any = None,
    ) -> None:
        self.region = region
        self.endpoint = endpoint_for(region)
        if client is None:
            config = Config(
                signature_version=botocore.UNSIGNED,
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": max(1, retries), "mode": "standard"},
            )
            client = boto3.client(
                "sts",
                region_name=region or GLOBAL_REGION,
                endpoint_url=self.endpoint,
                config=config,
            )
        self._client = client

    def assume_role_with_saml(self, role: Role, assertion: str, duration_hours: int) -> Credential:
        """Exchange *assertion* for temporary credentials for *role*.

        Raises:
            ProviderError: Transport failure or STS rejected the request.
            IncompleteCredentialResponse: STS answered without a required field.
        """
        duration_seconds = duration_hours * 60 * 60
        logger.debug("Assuming %s for %ds via %s", role.role_arn, duration_seconds, self.endpoint)
        try:
            response = self._client.assume_role_with_saml(
                RoleArn=role.role_arn,
                PrincipalArn=role.principal_arn,
                SAMLAssertion=assertion,
                DurationSeconds=duration_seconds,
            )
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code")
            message = error.get("Message") or str(exc)
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            prefix = f"{code}: " if code else ""
            raise ProviderError(f"{prefix}{message}", provider_code=code, http_status=status, cause=exc) from exc
        except BotoCoreError as exc:
            raise ProviderError(f"Could not reach {self.endpoint}: {exc}", cause=exc) from exc
        return self._parse_credentials(response)

    @staticmethod
    def _parse_credentials(response: dict[str, Any]) -> Credential:
        creds = response.get("Credentials")
        if not creds:
            raise IncompleteCredentialResponse("No credentials found in assume role response")

        missing = [name for name in _CREDENTIAL_FIELDS if not creds.get(name)]
        if missing:
            raise IncompleteCredentialResponse(f"No {', '.join(missing)} found in assume role response")

        return Credential(
            aws_access_key_id=creds["AccessKeyId"],
            aws_secret_access_key=creds["SecretAccessKey"],
            aws_session_token=creds["SessionToken"],
            aws_expiration=truncate_to_millis(creds["Expiration"]),
        )
