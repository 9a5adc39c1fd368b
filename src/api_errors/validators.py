"""Input Validation Utilities.

Reusable validators for workspace names, emails, identifiers and
pagination. Every validator runs before any storage access.
"""

import re
from typing import Optional, Tuple

from src.api_errors.exceptions import ValidationError

# Pragmatic address check: one "@", no whitespace, dotted domain.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100

# Maximum pagination limits
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def validate_workspace_name(name: Optional[str], max_length: int = MAX_NAME_LENGTH) -> str:
    """Validate a workspace name.

    Args:
        name: Raw name.
        max_length: Maximum allowed length after trimming.

    Returns:
        The trimmed name.

    Raises:
        ValidationError: If the name is empty or too long.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(message="Workspace name is required", field="name")

    name = name.strip()
    if len(name) > max_length:
        raise ValidationError(
            message=f"Workspace name must be at most {max_length} characters",
            field="name",
        )
    return name


def validate_email(email: Optional[str]) -> str:
    """Validate and normalize an email address.

    Returns:
        The trimmed, lower-cased address.

    Raises:
        ValidationError: If the address is malformed.
    """
    if not isinstance(email, str) or not email.strip():
        raise ValidationError(message="Email is required", field="email")

    email = email.strip().lower()
    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
        raise ValidationError(message=f"Invalid email address: '{email}'", field="email")
    return email


def validate_identifier(value: Optional[str], field: str) -> str:
    """Validate a non-empty opaque identifier (user id, token, ...)."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message=f"{field} is required", field=field)
    return value.strip()


def validate_pagination(
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Tuple[int, int]:
    """Validate pagination parameters.

    Args:
        page: Page number (1-indexed).
        page_size: Number of items per page.
        max_page_size: Maximum allowed page size.

    Returns:
        Tuple of (page, page_size).

    Raises:
        ValidationError: If pagination parameters are invalid.
    """
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise ValidationError(message="Page must be a positive integer", field="page")

    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        raise ValidationError(message="Page size must be a positive integer", field="page_size")

    if page_size > max_page_size:
        raise ValidationError(
            message=f"Page size {page_size} exceeds maximum of {max_page_size}",
            field="page_size",
        )

    return page, page_size
