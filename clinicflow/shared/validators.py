"""Shared validation utilities"""

import re
from datetime import date, datetime, time
from typing import Optional

from .errors import InvalidInputError


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to digits with an optional leading '+'.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number, e.g. "+15551234567" or "5551234567"

    Raises:
        ValueError: If the number has fewer than 7 or more than 15 digits
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)

    # E.164 allows at most 15 digits
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must contain between 7 and 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def parse_date(value: str | date) -> date:
    """Parse a YYYY-MM-DD calendar date, raising InvalidInputError on anything else"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as e:
        raise InvalidInputError(f"Invalid date '{value}'. Expected YYYY-MM-DD") from e


def parse_clock_time(value: str) -> time:
    """Parse an HH:MM wall-clock time"""
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (ValueError, AttributeError) as e:
        raise InvalidInputError(f"Invalid time '{value}'. Expected HH:MM") from e
