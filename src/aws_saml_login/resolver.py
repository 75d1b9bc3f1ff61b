"""Pick one role and a session duration from a parsed assertion.

Interactive input goes through a :class:`Prompter`, which the broker calls
at most once per decision.  Validation is a plain predicate so it can be
shared with the prompter's own re-ask loop.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

from aws_saml_login.errors import AmbiguousRole, ConfigIncomplete, InvalidSelection, NoRolesAvailable
from aws_saml_login.profiles import MAX_DURATION_HOURS, MIN_DURATION_HOURS
from aws_saml_login.saml_response import Role

logger = logging.getLogger(__name__)

ROLE_PROMPT = "Role"
DURATION_PROMPT = f"Session Duration Hours (up to {MAX_DURATION_HOURS})"


class Prompter(Protocol):
    """Source of interactive answers."""

    def choose(self, prompt: str, options: Sequence[str], default: int = 0) -> int:
        """Return the index of the chosen option."""
        ...

    def ask(self, prompt: str, default: str | None, validate: Callable[[str], bool]) -> str:
        """Return an answer for which *validate* is true."""
        ...


def parse_duration(text: str) -> int | None:
    """Return *text* as a duration in hours, or ``None`` if it is not valid."""
    try:
        hours = int(text.strip())
    except (ValueError, AttributeError):
        return None
    if MIN_DURATION_HOURS <= hours <= MAX_DURATION_HOURS:
        return hours
    return None


def is_valid_duration(text: str) -> bool:
    return parse_duration(text) is not None


def resolve_role(
    roles: Sequence[Role],
    *,
    interactive_allowed: bool,
    preferred_role_arn: str | None = None,
    prompter: Prompter | None = None,
) -> Role:
    if not roles:
        raise NoRolesAvailable("No roles found in SAML response.")
    if len(roles) == 1:
        return roles[0]

    match = next((i for i, r in enumerate(roles) if r.role_arn == preferred_role_arn), None)

    if not interactive_allowed:
        if match is not None:
            return roles[match]
        if preferred_role_arn:
            raise AmbiguousRole(
                f"Default role {preferred_role_arn!r} is not among the {len(roles)} roles in the SAML response."
            )
        raise AmbiguousRole("No default role ARN configured and multiple roles found in SAML response.")

    if prompter is None:
        raise AmbiguousRole("Multiple roles found in SAML response and no prompt is available.")
    index = prompter.choose(ROLE_PROMPT, [r.role_arn for r in roles], 0)
    if not 0 <= index < len(roles):
        raise InvalidSelection(f"Role selection {index} is out of range.")
    return roles[index]


def resolve_duration(
    *,
    interactive_allowed: bool,
    preferred_duration: int | None = None,
    prompter: Prompter | None = None,
) -> int:
    if not interactive_allowed or prompter is None:
        if preferred_duration is None:
            raise ConfigIncomplete("azure_default_duration_hours is not set and prompting is disabled")
        if parse_duration(str(preferred_duration)) is None:
            raise ConfigIncomplete(f"Default duration {preferred_duration} is outside 1-{MAX_DURATION_HOURS} hours")
        return preferred_duration

    default = str(preferred_duration) if preferred_duration is not None else None
    answer = prompter.ask(DURATION_PROMPT, default, is_valid_duration)
    hours = parse_duration(answer)
    if hours is None:
        raise InvalidSelection(f"Session duration {answer!r} is not an integer between 1 and {MAX_DURATION_HOURS}.")
    return hours


def resolve_role_and_duration(
    roles: Sequence[Role],
    *,
    interactive_allowed: bool,
    preferred_role_arn: str | None = None,
    preferred_duration: int | None = None,
    prompter: Prompter | None = None,
) -> tuple[Role, int]:
    """Return the role to assume and the session length in hours.

    Raises:
        NoRolesAvailable: The assertion offers no role.
        AmbiguousRole: Several roles, prompting disabled, no matching default.
        ConfigIncomplete: Prompting disabled and no default duration.
        InvalidSelection: The prompter returned an invalid answer.
    """
    role = resolve_role(
        roles,
        interactive_allowed=interactive_allowed,
        preferred_role_arn=preferred_role_arn,
        prompter=prompter,
    )
    hours = resolve_duration(
        interactive_allowed=interactive_allowed,
        preferred_duration=preferred_duration,
        prompter=prompter,
    )
    logger.debug("Selected %s for %d hour(s)", role, hours)
    return role, hours
