"""Output formatting for aws-saml-login.

JSON output is for other tools (``credential_process``, wrapper scripts);
human-readable output is rendered with Rich.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from io import StringIO
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aws_saml_login.credentials import Credential, format_timestamp, to_process_output
from aws_saml_login.login import BatchResult


def _render_to_string(renderable: Any, color: bool = False) -> str:
    """Render a Rich object to a string, with ANSI codes only if *color*."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=color, no_color=not color, width=100)
    console.print(renderable)
    return buf.getvalue().rstrip("\n")


def format_remaining(expiration: datetime | None, now: datetime | None = None) -> str:
    """Describe the time left before *expiration* like ``'7h 59m'``."""
    if expiration is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    seconds = int((expiration - now).total_seconds())
    if seconds <= 0:
        return "expired"
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


# ---------------------------------------------------------------------------
# format_response
# ---------------------------------------------------------------------------


def format_response(
    status: str,
    data: dict[str, Any] | None = None,
    error: dict[str, Any] | None = None,
    json_mode: bool = False,
    color: bool = False,
) -> str:
    """Build a generic response envelope.

    Parameters
    ----------
    status:
        ``"success"``, ``"partial"`` or ``"error"``.
    data:
        Arbitrary payload dict.
    error:
        Error detail dict with keys ``code`` and ``message``.
    json_mode:
        When *True* return a JSON string; otherwise a Rich-formatted string.
    """
    if json_mode:
        envelope: dict[str, Any] = {
            "status": status,
            "data": data,
            "error": error,
        }
        return json.dumps(envelope, indent=2, sort_keys=False)

    if status == "error" and error:
        code = error.get("code", "UNKNOWN")
        message = error.get("message", "An unknown error occurred.")
        text = Text()
        text.append("Error", style="bold red")
        text.append(f" [{code}]: ", style="red")
        text.append(message)
        return _render_to_string(Panel(text, title="Error", border_style="red"), color)

    if data:
        lines = [f"[bold]{key}:[/bold] {value}" for key, value in data.items()]
        return _render_to_string(Panel("\n".join(lines), title="Response", border_style="green"), color)

    return f"Status: {status}"


# ---------------------------------------------------------------------------
# Login results
# ---------------------------------------------------------------------------


def format_credential(
    name: str,
    credential: Credential,
    json_mode: bool = False,
    color: bool = False,
) -> str:
    """Format the credential obtained for one profile.

    In JSON mode this is the ``credential_process`` document, so the
    command can be used directly as an AWS CLI credential process.
    """
    if json_mode:
        return json.dumps(to_process_output(credential), indent=2)

    expiration = credential.aws_expiration
    text = Text()
    text.append("Credentials ready for ", style="bold green")
    text.append(name, style="bold")
    if expiration is not None:
        text.append(f"\nExpires {format_timestamp(expiration)} ({format_remaining(expiration)} left)")
    return _render_to_string(Panel(text, title="Login", border_style="green"), color)


def format_batch_result(result: BatchResult, json_mode: bool = False, color: bool = False) -> str:
    """Format the outcome of a login across all profiles."""
    status = "success" if result.ok else "partial"
    if json_mode:
        return format_response(status, data=result.to_dict(), json_mode=True)

    table = Table(title="Profiles", show_lines=False)
    table.add_column("Profile", style="bold")
    table.add_column("Result")
    table.add_column("Detail")
    for name, credential in sorted(result.succeeded.items()):
        table.add_row(name, Text("ok", style="green"), f"expires in {format_remaining(credential.aws_expiration)}")
    for name, exc in sorted(result.failed.items()):
        table.add_row(name, Text(exc.code, style="red"), str(exc))
    for name in sorted(result.skipped):
        table.add_row(name, Text("skipped", style="yellow"), "credential_process")
    return _render_to_string(table, color)
