"""
Payment reconciliation.

Payment rows in the store are not unique per (student, month) and were
written by several generations of forms: the student reference may live
under studentId / studentid / studentID, months may be "2026-1" or
"Jan 2026", and status casing varies. This module collapses them into one
authoritative record per key.

Rules for duplicates:
  1) paid beats unpaid, whatever the timestamps
  2) otherwise the later of (updatedAt, createdAt) wins
  3) identical instants fall back to the larger document id rather than to
     whichever row came second, so the winner does not depend on the order
     the store returned rows in; only a row compared with itself (same id)
     resolves to the second operand
"""

import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from dateutil import parser as date_parser

from coachfee.payment.models import NormalizedPayment
from coachfee.utils.months import normalize_month_key

logger = logging.getLogger("payment.reconciler")

PRIMARY_STUDENT_FIELD = "studentId"
STUDENT_FIELDS = ("studentId", "studentid", "studentID")

# Firestore rows use camelCase; rows migrated from the old backend kept $-prefixed metadata
UPDATED_KEYS = ("updatedAt", "updated_at", "$updatedAt")
CREATED_KEYS = ("createdAt", "created_at", "$createdAt")

PaymentKey = Tuple[str, str]


# ------------------------------
# Field / value normalization
# ------------------------------
def detect_student_field(docs) -> str:
    """Student-reference field name populated on the first row of the batch."""
    first = docs[0] if docs else None
    if not first:
        return PRIMARY_STUDENT_FIELD
    for name in STUDENT_FIELDS:
        if name in first:
            return name
    return PRIMARY_STUDENT_FIELD


def normalize_status(raw) -> str:
    s = ("" if raw is None else str(raw)).strip().lower()
    return "paid" if s == "paid" else "unpaid"


def parse_instant(value) -> Optional[datetime]:
    """ISO string or datetime -> aware datetime; anything else -> None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            try:
                dt = date_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _first_instant(doc: dict, keys) -> Optional[datetime]:
    for key in keys:
        dt = parse_instant(doc.get(key))
        if dt is not None:
            return dt
    return None


def normalize_payment(doc: dict, student_field: str = PRIMARY_STUDENT_FIELD) -> Optional[NormalizedPayment]:
    """Map one raw row; None when the student id or month cannot be recovered."""
    if not isinstance(doc, dict):
        return None

    raw_student = doc.get(student_field)
    if raw_student is None:
        raw_student = next((doc.get(f) for f in STUDENT_FIELDS if doc.get(f) is not None), None)
    student_id = ("" if raw_student is None else str(raw_student)).strip()
    month = normalize_month_key(doc.get("month"))

    if not student_id or not month:
        return None

    return NormalizedPayment(
        id=str(doc.get("id") or ""),
        student_id=student_id,
        month=month,
        status=normalize_status(doc.get("status", "unpaid")),
        created_at=_first_instant(doc, CREATED_KEYS),
        updated_at=_first_instant(doc, UPDATED_KEYS),
    )


# ------------------------------
# Duplicate collapse
# ------------------------------
def _latest_ts(p: NormalizedPayment) -> float:
    stamps = [dt.timestamp() for dt in (p.updated_at, p.created_at) if dt is not None]
    return max(stamps) if stamps else 0.0


def pick_best_payment(a: NormalizedPayment, b: NormalizedPayment) -> NormalizedPayment:
    if a.is_paid != b.is_paid:
        return b if b.is_paid else a

    ta, tb = _latest_ts(a), _latest_ts(b)
    if ta != tb:
        return b if tb > ta else a

    if a.id != b.id:
        return b if b.id > a.id else a
    return b


def reconcile(records: Iterable[NormalizedPayment]) -> Dict[PaymentKey, NormalizedPayment]:
    best: Dict[PaymentKey, NormalizedPayment] = {}
    for rec in records:
        key = (rec.student_id, rec.month)
        existing = best.get(key)
        best[key] = rec if existing is None else pick_best_payment(existing, rec)
    return best


# ------------------------------
# Session state
# ------------------------------
class PaymentSession:
    """
    Owns the detected student field and the reconciled view.
    The view is replaced wholesale on every load; readers get a read-only mapping.
    """

    def __init__(self):
        self.student_field: Optional[str] = None
        self.loaded_at: Optional[datetime] = None
        self.dropped: int = 0
        self._view: Dict[PaymentKey, NormalizedPayment] = {}

    @property
    def view(self) -> Mapping[PaymentKey, NormalizedPayment]:
        return MappingProxyType(self._view)

    def rebuild(self, raw_docs) -> Mapping[PaymentKey, NormalizedPayment]:
        docs = list(raw_docs or [])
        self.student_field = detect_student_field(docs)

        normalized = []
        for doc in docs:
            rec = normalize_payment(doc, self.student_field)
            if rec is not None:
                normalized.append(rec)

        self.dropped = len(docs) - len(normalized)
        self._view = reconcile(normalized)
        self.loaded_at = datetime.now(timezone.utc)

        if self.dropped:
            logger.info("[RECONCILE] excluded %d unparseable payment rows", self.dropped)
        logger.info(
            "[RECONCILE] %d rows -> %d keys (student field=%s)",
            len(docs), len(self._view), self.student_field,
        )
        return self.view

    def load(self, store) -> Mapping[PaymentKey, NormalizedPayment]:
        return self.rebuild(store.list_payments())

    def resolve_student_field(self, store) -> str:
        """Detected field, probing one stored row if nothing has been loaded yet."""
        if self.student_field is None:
            self.student_field = detect_student_field(store.list_payments(limit=1))
            logger.info("[RECONCILE] student field resolved to %s", self.student_field)
        return self.student_field

    def get(self, student_id: str, month: str) -> Optional[NormalizedPayment]:
        return self._view.get((student_id, month))

    def for_month(self, month: str) -> Dict[str, NormalizedPayment]:
        return {sid: rec for (sid, m), rec in self._view.items() if m == month}

    def apply_paid(self, student_id: str, month: str, now: datetime = None) -> NormalizedPayment:
        """Optimistic local update after a commit, until the next load."""
        now = now or datetime.now(timezone.utc)
        key = (student_id, month)
        existing = self._view.get(key)
        if existing is not None:
            rec = existing.model_copy(update={"status": "paid", "updated_at": now})
        else:
            rec = NormalizedPayment(
                id=f"local_{student_id}_{month}",
                student_id=student_id,
                month=month,
                status="paid",
                created_at=now,
                updated_at=now,
            )
        self._view = {**self._view, key: rec}
        return rec
