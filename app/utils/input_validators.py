"""Stateless input validation helpers for user-supplied fields.

These are best-effort checks for the simulator's auth and profile forms, not
a substitute for proper escaping at render time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from app.adapters.rate_limit.in_memory import InMemoryAbuseGuard

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SPECIAL_CHAR_RE = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

MIN_PASSWORD_LENGTH = 8
MIN_API_KEY_LENGTH = 20

_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


def sanitize_input(text: str) -> str:
    """Escape characters commonly used for markup/script injection."""
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)


def validate_password(password: str) -> PasswordCheck:
    """Check password strength and report every rule that failed.

    Args:
        password: Candidate password.

    Returns:
        PasswordCheck with valid=True when no rule failed.
    """
    errors: list[str] = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not SPECIAL_CHAR_RE.search(password):
        errors.append("Password must contain at least one special character")

    return PasswordCheck(valid=not errors, errors=errors)


def validate_api_key_format(
    guard: InMemoryAbuseGuard,
    client_id: str,
    api_key: str | None,
    service: str,
) -> tuple[bool, str | None]:
    """Check that an API key is present and plausibly shaped.

    Malformed or missing keys count as suspicious activity for client_id, so
    repeated bad keys escalate to a block like rate limit abuse does.

    Returns:
        Tuple of (valid, message); message is None when valid.
    """
    if not api_key:
        guard.log_suspicious_activity(client_id, f"Attempted to access {service} without API key")
        return False, "API key is required"

    if len(api_key) < MIN_API_KEY_LENGTH:
        guard.log_suspicious_activity(client_id, f"Invalid API key format for {service}")
        return False, "Invalid API key format"

    return True, None
