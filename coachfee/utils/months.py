# utils/months.py
import re
from datetime import datetime
from typing import List, Dict, Optional

from dateutil.relativedelta import relativedelta

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
_MONTH_BY_ABBR = {name[:3].lower(): f"{i:02d}" for i, name in enumerate(MONTH_NAMES, start=1)}

_CANONICAL = re.compile(r"^\d{4}-\d{2}$")
_SHORT_MONTH = re.compile(r"^(\d{4})-(\d)$")
_ABBR_AND_YEAR = re.compile(r"^([A-Za-z]{3})\s+(\d{4})$")
_NAME_AND_YEAR = re.compile(r"^([A-Za-z]+)\s+(\d{4})$")


def normalize_month_key(value) -> Optional[str]:
    """
    Normalize any stored month value into YYYY-MM.

    Recognized, in order: "2026-01", "2026-1", "Jan 2026", "January 2026".
    Anything else returns None.
    """
    s = ("" if value is None else str(value)).strip()
    if not s:
        return None

    if _CANONICAL.match(s):
        return s if is_month_key(s) else None

    m = _SHORT_MONTH.match(s)
    if m:
        key = f"{m.group(1)}-{m.group(2).zfill(2)}"
        return key if is_month_key(key) else None

    # "Jan 2026" first, then full names matched by their first three letters
    for pattern in (_ABBR_AND_YEAR, _NAME_AND_YEAR):
        m = pattern.match(s)
        if m:
            num = _MONTH_BY_ABBR.get(m.group(1)[:3].lower())
            if num:
                return f"{m.group(2)}-{num}"

    return None


def is_month_key(value) -> bool:
    """Strict YYYY-MM with a real month number."""
    if not isinstance(value, str) or not _CANONICAL.match(value):
        return False
    return 1 <= int(value[5:]) <= 12


def format_month_text(month: str) -> str:
    """'2026-01' -> 'January 2026'. Non-canonical input is returned unchanged."""
    if not is_month_key(month):
        return month
    year, num = month.split("-")
    return f"{MONTH_NAMES[int(num) - 1]} {year}"


def current_month_key(now: datetime = None) -> str:
    now = now or datetime.now()
    return f"{now.year}-{now.month:02d}"


def month_options(now: datetime = None, back: int = 12, ahead: int = 1) -> List[Dict[str, str]]:
    """
    Month picker entries from `back` months ago to `ahead` months ahead,
    newest first, e.g. {"value": "2026-01", "label": "Jan 2026"}.
    """
    now = now or datetime.now()
    first = datetime(now.year, now.month, 1)
    options = []
    for offset in range(-back, ahead + 1):
        d = first + relativedelta(months=offset)
        options.append({
            "value": f"{d.year}-{d.month:02d}",
            "label": f"{MONTH_NAMES[d.month - 1][:3]} {d.year}",
        })
    options.reverse()
    return options
