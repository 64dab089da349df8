"""
auth/validation.py -- Signup/signin input policy.

Each validator returns a list of {"field", "message"} dicts rather than
raising on the first problem, so a single 400 response tells the caller about
every field that needs fixing. CredentialStore and the signin route wrap a
non-empty list in auth.errors.ValidationError.

Email syntax is checked with email-validator (no DNS lookups). Normalization
is trim + lower-case of the whole address; the normalized form is what the
UNIQUE constraint on users.email sees.
"""

from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
# bcrypt only reads the first 72 bytes of its input; bcrypt >= 5 rejects longer.
PASSWORD_MAX_BYTES = 72

_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")

FieldErrors = list[dict[str, str]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_email(email: str) -> str | None:
    normalized = normalize_email(email)
    if not normalized or len(normalized) > EMAIL_MAX_LENGTH:
        return "Please provide a valid email address"
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError:
        return "Please provide a valid email address"
    return None


def check_password_policy(password: str) -> list[str]:
    """Return every password policy violation (empty list means acceptable)."""
    problems: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        problems.append(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
    if not (_LOWER_RE.search(password) and _UPPER_RE.search(password) and _DIGIT_RE.search(password)):
        problems.append("Password must contain at least one uppercase letter, one lowercase letter, and one number")
    return problems


def validate_signup(name: str, email: str, password: str) -> FieldErrors:
    errors: FieldErrors = []
    if not NAME_MIN_LENGTH <= len(name.strip()) <= NAME_MAX_LENGTH:
        errors.append(
            {"field": "name", "message": f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"}
        )
    email_problem = _check_email(email)
    if email_problem:
        errors.append({"field": "email", "message": email_problem})
    for problem in check_password_policy(password):
        errors.append({"field": "password", "message": problem})
    return errors


def validate_signin(email: str, password: str) -> FieldErrors:
    """Shape check only -- the password policy is never applied at signin."""
    errors: FieldErrors = []
    email_problem = _check_email(email)
    if email_problem:
        errors.append({"field": "email", "message": email_problem})
    if not password:
        errors.append({"field": "password", "message": "Password is required"})
    return errors
