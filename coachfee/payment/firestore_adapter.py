"""
Firestore access for students, payments, settings and sms logs.
Every google.api_core failure is re-raised as StoreError.
"""

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from coachfee.core.config import COLLECTIONS, PAYMENTS_PAGE_LIMIT
from coachfee.core.errors import StoreError
from coachfee.payment.models import Settings, SmsLogEntry, Student
from coachfee.payment.reconciler import UPDATED_KEYS, CREATED_KEYS, parse_instant

logger = logging.getLogger("payment.firestore")


# ------------------------------
# Helpers
# ------------------------------
def _server_ts():
    # Prefer Firestore server timestamp where auditability matters
    return firestore.SERVER_TIMESTAMP


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _with_id(snap) -> dict:
    return {**(snap.to_dict() or {}), "id": snap.id}


def _store_call(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except gcp_exceptions.GoogleAPIError as e:
            logger.exception("[STORE] %s failed", fn.__name__)
            raise StoreError(f"Document store unavailable: {e}")
    return wrapper


def _update_sort_key(doc: dict) -> float:
    for key in UPDATED_KEYS + CREATED_KEYS:
        dt = parse_instant(doc.get(key))
        if dt is not None:
            return dt.timestamp()
    return 0.0


class FirestoreStore:
    def __init__(self, db):
        self.db = db

    # ------------------------------
    # Students
    # ------------------------------
    @_store_call
    def get_student(self, student_id: str) -> Optional[Student]:
        snap = self.db.collection(COLLECTIONS["STUDENTS"]).document(student_id).get()
        if not snap.exists:
            return None
        return Student.from_doc(snap.id, snap.to_dict())

    @_store_call
    def list_students(self, limit: int = PAYMENTS_PAGE_LIMIT) -> List[Student]:
        docs = self.db.collection(COLLECTIONS["STUDENTS"]).limit(limit).stream()
        students = [Student.from_doc(d.id, d.to_dict()) for d in docs]
        students.sort(key=lambda s: s.name.lower())
        return students

    # ------------------------------
    # Payments
    # ------------------------------
    @_store_call
    def list_payments(self, limit: int = PAYMENTS_PAGE_LIMIT) -> List[dict]:
        """
        One page of raw payment rows, newest update first.
        Sorted here: order_by("updatedAt") would silently drop legacy rows
        that never had the field.
        """
        docs = self.db.collection(COLLECTIONS["PAYMENTS"]).limit(limit).stream()
        rows = [_with_id(d) for d in docs]
        rows.sort(key=_update_sort_key, reverse=True)
        return rows

    @_store_call
    def find_payments(self, student_field: str, student_id: str, **equals) -> List[dict]:
        """Equality query on the student field plus any of month/status."""
        query = self.db.collection(COLLECTIONS["PAYMENTS"]).where(student_field, "==", student_id)
        for field, value in equals.items():
            query = query.where(field, "==", value)
        rows = [_with_id(d) for d in query.limit(PAYMENTS_PAGE_LIMIT).stream()]
        rows.sort(key=_update_sort_key, reverse=True)
        return rows

    @_store_call
    def update_payment(self, payment_id: str, fields: dict) -> None:
        self.db.collection(COLLECTIONS["PAYMENTS"]).document(payment_id).update(fields)

    @_store_call
    def create_payment(self, fields: dict) -> str:
        ref = self.db.collection(COLLECTIONS["PAYMENTS"]).document()
        ref.set(fields)
        return ref.id

    # ------------------------------
    # Settings (singleton, created lazily)
    # ------------------------------
    @_store_call
    def get_settings(self) -> Settings:
        coll = self.db.collection(COLLECTIONS["SETTINGS"])
        for snap in coll.limit(1).stream():
            return Settings.from_doc(snap.id, snap.to_dict())

        settings = Settings()
        ref = coll.document()
        ref.set({**settings.to_doc(), "createdAt": _now_iso()})
        logger.info("[STORE] created default settings document %s", ref.id)
        return settings.model_copy(update={"id": ref.id})

    # ------------------------------
    # SMS audit log (append only)
    # ------------------------------
    @_store_call
    def add_sms_log(self, entry: SmsLogEntry) -> str:
        payload = {
            **entry.to_doc(),
            "createdAt": entry.created_at or _now_iso(),
            "createdAtServer": _server_ts(),
        }
        _, ref = self.db.collection(COLLECTIONS["SMS_LOGS"]).add(payload)
        return ref.id

    @_store_call
    def list_sms_logs(self, month: str, status: Optional[str] = None) -> List[SmsLogEntry]:
        query = self.db.collection(COLLECTIONS["SMS_LOGS"]).where("month", "==", month)
        if status:
            query = query.where("status", "==", status)
        entries = [SmsLogEntry.from_doc(d.id, d.to_dict()) for d in query.limit(PAYMENTS_PAGE_LIMIT).stream()]
        entries.sort(key=lambda e: e.created_at or "", reverse=True)
        return entries
