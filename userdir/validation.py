"""Field validation for the record edit form and the login form."""

import re
from typing import Dict, Mapping

from userdir.errors import ValidationError
from userdir.messaging import get_message

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Absolute http(s) URL whose host part contains a dot
URL_PATTERN = re.compile(r"^https?://[^\s/?#]+\.[^\s/?#]+(?:[/?#]\S*)?$", re.IGNORECASE)

MIN_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def validate(fields: Mapping[str, str]) -> Dict[str, str]:
    """
    Validate record form fields.

    Returns a mapping of field name to message. A field without an error is
    absent from the mapping, so an empty dict means the form may be submitted.
    """
    errors: Dict[str, str] = {}

    if len(fields.get("first_name") or "") < MIN_NAME_LENGTH:
        errors["first_name"] = get_message("validation.first_name_short")

    if len(fields.get("last_name") or "") < MIN_NAME_LENGTH:
        errors["last_name"] = get_message("validation.last_name_short")

    if not is_valid_email(fields.get("email") or ""):
        errors["email"] = get_message("validation.email_invalid")

    avatar = fields.get("avatar") or ""
    if not avatar:
        errors["avatar"] = get_message("validation.avatar_required")
    elif not URL_PATTERN.match(avatar):
        errors["avatar"] = get_message("validation.avatar_invalid")

    return errors


def ensure_valid(fields: Mapping[str, str]) -> None:
    """Raise ValidationError carrying the field errors, if there are any."""
    errors = validate(fields)
    if errors:
        raise ValidationError(errors)


def validate_login(email: str, password: str) -> Dict[str, str]:
    """Login form checks; only the first failing rule is reported, under ``form``."""
    if not email or not password:
        return {"form": get_message("login.missing_fields")}
    if not is_valid_email(email):
        return {"form": get_message("login.invalid_email")}
    if len(password) < MIN_PASSWORD_LENGTH:
        return {"form": get_message("login.short_password")}
    return {}
