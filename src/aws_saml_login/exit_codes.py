"""Exit codes for scripted callers.

These codes let a wrapper script decide whether to retry, reconfigure,
or give up without parsing error messages.
"""

from __future__ import annotations

# Success
SUCCESS = 0

# Sign-in did not produce an assertion (IdP error, timeout, extraction race)
AUTHENTICATION_FAILED = 1

# Profile or store problem the user must fix
CONFIG_ERROR = 2

# Assertion could not be turned into a single role
ROLE_ERROR = 3

# Any other error (token service, unknown)
OTHER_ERROR = 4

# Batch login finished but at least one profile failed
PARTIAL_FAILURE = 5


ERROR_CODE_MAP: dict[str, int] = {
    "IDENTITY_PROVIDER_ERROR": AUTHENTICATION_FAILED,
    "TIMEOUT": AUTHENTICATION_FAILED,
    "EXTRACTION_RACE": AUTHENTICATION_FAILED,
    "AUTHENTICATOR_ERROR": AUTHENTICATION_FAILED,
    "CONFIG_INCOMPLETE": CONFIG_ERROR,
    "PROFILE_NOT_FOUND": CONFIG_ERROR,
    "STORE_IO_ERROR": CONFIG_ERROR,
    "VALIDATION_ERROR": CONFIG_ERROR,
    "MALFORMED_ASSERTION": ROLE_ERROR,
    "NO_ROLES_AVAILABLE": ROLE_ERROR,
    "AMBIGUOUS_ROLE": ROLE_ERROR,
    "INVALID_SELECTION": ROLE_ERROR,
    "PROVIDER_ERROR": OTHER_ERROR,
    "INCOMPLETE_CREDENTIAL_RESPONSE": OTHER_ERROR,
}


def exit_code_for(error_code: str) -> int:
    """Map an error code string to a CLI exit code."""
    return ERROR_CODE_MAP.get(error_code, OTHER_ERROR)
