"""Phone number normalization for wa.me style links."""
from __future__ import annotations

import re
from typing import Any, Optional

_NON_DIGITS = re.compile(r"[^0-9]+")

# Argentina; 10-digit local numbers get the country code
COUNTRY_CODE = "54"
LOCAL_LENGTH = 10
MIN_LENGTH = 8


def digits_only(raw: Any) -> str:
    return _NON_DIGITS.sub("", "" if raw is None else str(raw))


def normalize_phone(raw: Any) -> Optional[str]:
    """Return the canonical dialable number or None.

    >>> normalize_phone("11-2345-6789")
    '541123456789'
    >>> normalize_phone("123") is None
    True
    """
    phone = digits_only(raw)
    if len(phone) == LOCAL_LENGTH:
        phone = COUNTRY_CODE + phone
    if len(phone) < MIN_LENGTH:
        return None
    return phone


def mask_phone(phone: Optional[str]) -> str:
    """Keep the last 4 digits for log lines."""
    if not phone:
        return "<none>"
    return f"***{phone[-4:]}"
