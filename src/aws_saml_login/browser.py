"""Chromium-based authenticator (requires the ``browser`` extra).

The IdP answers sign-in with an auto-submitting form that posts the
``SAMLResponse`` to the AWS sign-in endpoint, often before any page state
can be inspected.  The assertion is therefore taken from the intercepted
POST body via selenium-wire rather than read from the DOM.
"""

from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path
from typing import Any

from aws_saml_login.errors import (
    AssertionExtractionError,
    AuthenticationTimeout,
    IdentityProviderError,
)

logger = logging.getLogger(__name__)

WINDOW_WIDTH = 425
WINDOW_HEIGHT = 550

# Matches every assertion consumer endpoint in saml_request.
_ACS_PATTERN = r"https://signin\.(aws\.amazon\.com|amazonaws-us-gov\.com|amazonaws\.cn)/saml"


def extract_saml_response(body: bytes) -> str:
    """Return the ``SAMLResponse`` field of a form-encoded POST body."""
    try:
        form = urllib.parse.parse_qs(body.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise AssertionExtractionError("SAML POST body is not UTF-8", cause=exc) from exc
    values = form.get("SAMLResponse")
    if not values or not values[0]:
        raise AssertionExtractionError("SAML POST did not contain a SAMLResponse field")
    return values[0]


def _load_webdriver() -> tuple[Any, type[Exception], type[Exception]]:
    """Import selenium-wire, returning ``(webdriver, TimeoutException, WebDriverException)``."""
    try:
        from selenium.common.exceptions import TimeoutException, WebDriverException
        from seleniumwire import webdriver
    except ImportError as exc:
        raise IdentityProviderError(
            "Browser sign-in needs the browser extra: pip install 'aws-saml-login[browser]'",
            cause=exc,
        ) from exc
    return webdriver, TimeoutException, WebDriverException


class BrowserAuthenticator:
    """Opens a Chromium window on the login URL and waits for the assertion.

    Args:
        headless: Run without a visible window.  Sign-in pages that need
            user input (MFA, account picker) require ``False``.
        sandbox: Keep Chromium's sandbox on.  Some Linux containers need
            it disabled.
        user_data_dir: Where to persist browser state when session reuse
            is requested.
    """

    def __init__(
        self,
        *,
        headless: bool = False,
        sandbox: bool = True,
        user_data_dir: Path | None = None,
    ) -> None:
        self.headless = headless
        self.sandbox = sandbox
        self.user_data_dir = user_data_dir

    def _options(self, webdriver: Any, reuse_session: bool) -> Any:
        options = webdriver.ChromeOptions()
        options.add_argument(f"--window-size={WINDOW_WIDTH},{WINDOW_HEIGHT}")
        options.add_argument("--lang=en")
        if self.headless:
            options.add_argument("--headless=new")
        if not self.sandbox:
            options.add_argument("--no-sandbox")
        if reuse_session and self.user_data_dir is not None:
            try:
                self.user_data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise IdentityProviderError(
                    f"Could not create browser data directory {self.user_data_dir}: {exc}", cause=exc
                ) from exc
            options.add_argument(f"--user-data-dir={self.user_data_dir}")
        return options

    def authenticate(self, login_url: str, *, timeout: float, reuse_session: bool) -> str:
        webdriver, TimeoutException, WebDriverException = _load_webdriver()

        def _accept_english(request: Any) -> None:
            del request.headers["Accept-Language"]
            request.headers["Accept-Language"] = "en"

        options = self._options(webdriver, reuse_session)
        try:
            driver = webdriver.Chrome(options=options)
        except WebDriverException as exc:
            raise IdentityProviderError(f"Could not start Chromium: {exc.msg}", cause=exc) from exc

        try:
            driver.scopes = [r".*login\.microsoftonline\.com.*", f"{_ACS_PATTERN}.*"]
            driver.request_interceptor = _accept_english
            logger.debug("Opening sign-in page")
            driver.get(login_url)
            request = driver.wait_for_request(_ACS_PATTERN, timeout=timeout)
            if request.method != "POST" or not request.body:
                raise AssertionExtractionError("Sign-in finished without posting a SAML response")
            return extract_saml_response(request.body)
        except TimeoutException as exc:
            raise AuthenticationTimeout(f"No SAML response within {timeout:.0f}s", cause=exc) from exc
        except WebDriverException as exc:
            raise IdentityProviderError(f"Browser sign-in failed: {exc.msg}", cause=exc) from exc
        finally:
            driver.quit()
