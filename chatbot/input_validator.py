# chatbot/input_validator.py
"""
Input Validator

Classifies raw chat text before the conversation engine acts on it:
- numeric commands (system codes or menu item ids)
- email addresses (payment receipt)
- DD/MM/YYYY HH:MM strings (order scheduling)
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from .errors import InputValidationError
from .menu_catalog import MENU

CANCEL = 0
SHOW_MENU = 1
VIEW_CURRENT = 97
VIEW_HISTORY = 98
CHECKOUT = 99
PAY = 100
SIMULATE_PAYMENT = 101
SCHEDULE = 102
VIEW_SCHEDULED = 103

SYSTEM_COMMANDS = frozenset(
    {CANCEL, VIEW_CURRENT, VIEW_HISTORY, CHECKOUT, PAY, SIMULATE_PAYMENT, SCHEDULE, VIEW_SCHEDULED}
)

# Bare "0" or a number without leading zeros. No surrounding whitespace.
_NUMERIC_RE = re.compile(r"^(?:0|[1-9]\d*)$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DATETIME_RE = re.compile(r"^\d{2}/\d{2}/\d{4} \d{2}:\d{2}$")

SCHEDULE_FORMAT = "%d/%m/%Y %H:%M"


def classify_command(text: str, catalog_size: int = len(MENU)) -> Optional[int]:
    """
    Return the numeric command for `text`, or None if it is not a command
    this bot understands.
    """
    if not isinstance(text, str) or not _NUMERIC_RE.match(text):
        return None

    num = int(text)
    if num in SYSTEM_COMMANDS or 1 <= num <= catalog_size:
        return num
    return None


def is_valid_email(text: str) -> bool:
    return isinstance(text, str) and bool(_EMAIL_RE.match(text))


def is_valid_datetime(text: str) -> bool:
    """Shape check only; calendar validity is checked by parse_schedule_time."""
    return isinstance(text, str) and bool(_DATETIME_RE.match(text))


def parse_schedule_time(text: str) -> datetime:
    if not is_valid_datetime(text):
        raise InputValidationError(
            "Invalid date or time. Please enter a future date in the format: DD/MM/YYYY HH:MM"
        )
    try:
        return datetime.strptime(text, SCHEDULE_FORMAT)
    except ValueError as exc:
        raise InputValidationError(
            "Invalid date or time. Please enter a future date in the format: DD/MM/YYYY HH:MM"
        ) from exc
