"""
Orchestration of "mark paid".
- Preconditions (shape, admin allow-list, student exists) fail before any side effect.
- Then a fixed two-phase sequence: attempt notification, always commit.
- Notification failure only ever costs notified=False; payment state is the
  source of truth and never waits on the SMS provider beyond a bounded poll.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from coachfee.core.config import (
    NOTIFY_TIMEOUT_SECONDS,
    NOTIFY_POLL_INTERVAL_SECONDS,
    get_admin_emails,
)
from coachfee.core.errors import NotFoundError, NotificationError, ValidationError
from coachfee.core.logger import log_to_cloud
from coachfee.core.security import require_admin
from coachfee.notification.dispatcher import all_sent
from coachfee.payment.models import DispatchOutcome, MarkPaidResult, Settings, Student
from coachfee.payment.reconciler import PaymentSession, normalize_payment, pick_best_payment
from coachfee.utils.months import is_month_key

logger = logging.getLogger("payment.orchestrator")


# ------------------------------
# Polling helper
# ------------------------------
async def _wait_for_notification(
    task: "asyncio.Task",
    timeout_seconds: float = NOTIFY_TIMEOUT_SECONDS,
    interval_seconds: float = NOTIFY_POLL_INTERVAL_SECONDS,
) -> List[DispatchOutcome]:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    while loop.time() < deadline:
        if task.done():
            return task.result()
        await asyncio.sleep(interval_seconds)
    if task.done():
        return task.result()
    raise NotificationError(f"Notification still running after {timeout_seconds:g}s")


class MarkPaidOrchestrator:
    def __init__(
        self,
        store,
        dispatcher,
        session: PaymentSession,
        admin_emails: Optional[Iterable[str]] = None,
        notify_timeout_seconds: float = NOTIFY_TIMEOUT_SECONDS,
        poll_interval_seconds: float = NOTIFY_POLL_INTERVAL_SECONDS,
        background: Optional[set] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.session = session
        self.admin_emails = frozenset(admin_emails) if admin_emails is not None else None
        self.notify_timeout_seconds = notify_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        # strong refs for dispatch tasks that outlive the bounded wait
        self._background = background if background is not None else set()

    # ------------------------------
    # Public
    # ------------------------------
    async def mark_paid(self, student_id: str, month: str, admin_email: str) -> MarkPaidResult:
        student_id = self._validate(student_id, month)
        allow_list = self.admin_emails if self.admin_emails is not None else get_admin_emails()
        admin = require_admin(admin_email, allow_list)

        # Firestore client is blocking; keep it off the event loop
        student = await asyncio.to_thread(self.store.get_student, student_id)
        if student is None:
            raise NotFoundError(f"Student not found: {student_id}")

        logger.info("[ORCH] mark paid student=%s month=%s by=%s", student_id, month, admin)

        notified = await self._attempt_notify(student, month)
        await asyncio.to_thread(self._commit_payment, student_id, month)

        log_to_cloud(
            "payment",
            "INFO",
            "payment marked paid",
            {"studentId": student_id, "month": month, "admin": admin, "notified": notified},
        )
        return MarkPaidResult(committed=True, notified=notified)

    # ------------------------------
    # Steps
    # ------------------------------
    @staticmethod
    def _validate(student_id, month) -> str:
        if not isinstance(student_id, str) or not student_id.strip():
            raise ValidationError("studentId is required")
        if not is_month_key(month):
            raise ValidationError("month must be in YYYY-MM format")
        return student_id.strip()

    async def _notify(self, student: Student, month: str) -> List[DispatchOutcome]:
        settings: Settings = await asyncio.to_thread(self.store.get_settings)
        context = {
            "studentId": student.id,
            "month": month,
            "name": student.name,
            "coachingName": settings.coaching_name,
        }
        return await self.dispatcher.dispatch(
            settings.recipients_for(student), settings.sms_template, context
        )

    async def _attempt_notify(self, student: Student, month: str) -> bool:
        try:
            # settings read and every send/audit write count against the wait
            task = asyncio.ensure_future(self._notify(student, month))
            self._track(task)
            outcomes = await _wait_for_notification(
                task,
                timeout_seconds=self.notify_timeout_seconds,
                interval_seconds=self.poll_interval_seconds,
            )
        except Exception as e:
            logger.warning("[ORCH] notification failed for %s/%s: %s", student.id, month, e)
            return False

        notified = all_sent(outcomes)
        if not notified:
            logger.warning(
                "[ORCH] notification incomplete for %s/%s: %s",
                student.id, month, [(o.role, o.status) for o in outcomes],
            )
        return notified

    def _commit_payment(self, student_id: str, month: str) -> None:
        """
        Upsert (student, month) to paid. Store errors propagate: nothing was
        committed and the caller may simply retry.
        """
        field = self.session.resolve_student_field(self.store)
        now = datetime.now(timezone.utc)
        stamp = now.isoformat()

        match = None
        for row in self.store.find_payments(field, student_id):
            rec = normalize_payment(row, field)
            if rec is None or rec.month != month or not rec.id:
                continue
            match = rec if match is None else pick_best_payment(match, rec)

        if match is not None:
            self.store.update_payment(match.id, {"status": "paid", "paidAt": stamp, "updatedAt": stamp})
            logger.info("[ORCH] payment %s updated to paid", match.id)
        else:
            new_id = self.store.create_payment({
                field: student_id,
                "month": month,
                "status": "paid",
                "paidAt": stamp,
                "createdAt": stamp,
                "updatedAt": stamp,
            })
            logger.info("[ORCH] payment %s created as paid (field=%s)", new_id, field)

        self.session.apply_paid(student_id, month, now)

    def _track(self, task: "asyncio.Task") -> None:
        self._background.add(task)

        def _done(t):
            self._background.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error("[ORCH] background dispatch error: %s", t.exception())

        task.add_done_callback(_done)
