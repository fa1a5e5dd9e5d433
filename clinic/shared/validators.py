"""Shared validation utilities"""

import re
from typing import Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164-like format.

    Args:
        phone: Phone number string in various formats

    Returns:
        "+" followed by 7-15 digits

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must contain between 7 and 15 digits")

    return f"+{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_working_days(days: Optional[list[str]]) -> Optional[list[str]]:
    """Normalize weekday names to lowercase and reject unknown ones"""
    if days is None:
        return days

    normalized = []
    for day in days:
        name = day.strip().lower()
        if name not in WEEKDAYS:
            raise ValueError(f"Unknown weekday: {day}")
        if name not in normalized:
            normalized.append(name)
    return normalized
