"""
utils/phone.py

Bangladesh mobile number normalization. Used both for dashboard-side
validation of student contacts and on the SMS send path, so the two can
never disagree about what is sendable.
"""

import re
from typing import Optional

COUNTRY_CODE = "880"

# 01 + operator digit 3-9 + 8 digits
_LOCAL_MOBILE = re.compile(r"^01[3-9]\d{8}$")
_NON_DIGIT = re.compile(r"\D")


def normalize_phone(phone) -> Optional[str]:
    """
    Return the number as +8801XXXXXXXXX, or None if it is not a valid
    local mobile number. Accepts 01XXXXXXXXX, 8801XXXXXXXXX, +880 1XXX-XXXXXX
    and similar punctuated forms. Never raises.
    """
    if not phone or not isinstance(phone, str):
        return None

    digits = _NON_DIGIT.sub("", phone)

    if digits.startswith(COUNTRY_CODE):
        # 880 1712345678 (trunk 0 dropped) or 880 01712345678
        digits = digits[len(COUNTRY_CODE):]
        if not digits.startswith("0"):
            digits = "0" + digits
    elif digits.startswith(COUNTRY_CODE[:2]):
        # 88 01712345678
        digits = digits[2:]

    if not _LOCAL_MOBILE.match(digits):
        return None

    return f"+{COUNTRY_CODE}{digits[1:]}"


def is_valid_phone(phone) -> bool:
    return normalize_phone(phone) is not None
