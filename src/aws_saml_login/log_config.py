"""Logging setup and secret scrubbing for aws-saml-login.

Console output goes to stderr so ``--json`` output on stdout stays
machine-readable.  A :class:`ScrubFilter` on every handler redacts secret
keys, session tokens and SAML payloads.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional


# Patterns that match sensitive values in log messages.
_SCRUB_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r'(secret_?access_?key["\x27]?\s*[:=]\s*["\x27]?)([^"\x27\s,}{\]]+)', re.IGNORECASE),
     r'\1***REDACTED***'),
    (re.compile(r'(session_?token["\x27]?\s*[:=]\s*["\x27]?)([^"\x27\s,}{\]]+)', re.IGNORECASE),
     r'\1***REDACTED***'),
    (re.compile(r'(SAML(?:Response|Request|Assertion)["\x27]?\s*[:=]\s*["\x27]?)([^"\x27\s&,}{\]]+)', re.IGNORECASE),
     r'\1***REDACTED***'),
    (re.compile(r'(<(?:\w+:)?(?:SecretAccessKey|SessionToken)>)([^<]+)', re.IGNORECASE),
     r'\1***REDACTED***'),
]


class ScrubFilter(logging.Filter):
    """Logging filter that redacts AWS secrets and SAML payloads.

    Replaces matched values with ``***REDACTED***`` in both the message
    template and its arguments.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg and isinstance(record.msg, str):
            record.msg = _scrub(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: _scrub(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    _scrub(a) if isinstance(a, str) else a
                    for a in record.args
                )
        return True


def _scrub(text: str) -> str:
    """Apply all scrub patterns to *text*."""
    for pattern, replacement in _SCRUB_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def configure_logging(
    debug: bool = False,
    *,
    log_dir: Optional[str] = None,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> None:
    """Configure console (and optionally rotating file) logging.

    :param debug: Log at DEBUG with logger name and line number; otherwise
        INFO with the bare message.
    :param log_dir: Directory for a rotating ``aws-saml-login.log``.  Reads
        ``AWS_SAML_LOGIN_LOG_DIR``; no file is written when neither is set.
    """
    log_dir = log_dir or os.environ.get("AWS_SAML_LOGIN_LOG_DIR")
    log_level = logging.DEBUG if debug else logging.INFO
    scrub_filter = ScrubFilter()

    root = logging.getLogger()
    root.setLevel(log_level)

    has_console = any(
        type(h) is logging.StreamHandler for h in root.handlers
    )
    if not has_console:
        console = logging.StreamHandler(sys.stderr)
        if debug:
            fmt = "%(levelname)s %(name)s:%(lineno)d %(message)s"
        else:
            fmt = "%(message)s"
        console.setFormatter(logging.Formatter(fmt))
        root.addHandler(console)

    if log_dir:
        has_rotating = any(
            isinstance(h, RotatingFileHandler) for h in root.handlers
        )
        if not has_rotating:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, "aws-saml-login.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s %(name)s %(levelname)s %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            root.addHandler(file_handler)

    for handler in root.handlers:
        handler.setLevel(log_level)
        if not any(isinstance(f, ScrubFilter) for f in handler.filters):
            handler.addFilter(scrub_filter)
