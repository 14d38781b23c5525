# file: coachfee/notification/dispatcher.py
import re
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from coachfee.core.errors import NotificationError, StoreError
from coachfee.payment.models import DispatchOutcome, SmsLogEntry
from coachfee.utils.months import format_month_text
from coachfee.utils.phone import normalize_phone

logger = logging.getLogger("notification.dispatch")

INVALID_PHONE = "Invalid phone"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


# -------------------------
# Helper: safe formatter
# -------------------------
def render_template(template: str, params: Dict[str, Any]) -> str:
    """Substitute {key} placeholders; unknown ones are left as written."""
    params = params or {}

    def _sub(m):
        key = m.group(1)
        return str(params[key]) if key in params else m.group(0)

    return _PLACEHOLDER.sub(_sub, template or "")


def render_fee_message(template: str, name: str, month: str, coaching_name: str) -> str:
    return render_template(template, {
        "name": name,
        "month": format_month_text(month),
        "coachingName": coaching_name,
    })


class SmsDispatcher:
    """
    One gateway attempt per recipient, one audit row per attempt.
    Recipients are handled one after another so the log order is stable.
    """

    def __init__(self, gateway, store):
        self.gateway = gateway
        self.store = store

    async def dispatch(
        self,
        recipients: Sequence[Tuple[str, Optional[str]]],
        template: str,
        context: Dict[str, Any],
    ) -> List[DispatchOutcome]:
        student_id = context["studentId"]
        month = context["month"]
        message = render_fee_message(
            template,
            name=context.get("name", ""),
            month=month,
            coaching_name=context.get("coachingName", ""),
        )

        outcomes: List[DispatchOutcome] = []
        for role, raw_phone in recipients:
            if not raw_phone:
                continue
            outcome = await self._send_one(role, raw_phone, message)
            outcomes.append(outcome)
            await self._audit(student_id, month, message, outcome)
        return outcomes

    async def _send_one(self, role: str, raw_phone: str, message: str) -> DispatchOutcome:
        phone = normalize_phone(raw_phone)
        if not phone:
            logger.warning("[DISPATCH] %s number %r is not a valid mobile number", role, raw_phone)
            return DispatchOutcome(role=role, to_phone=None, status="failed", response=INVALID_PHONE)

        try:
            result = await self.gateway.send(phone, message)
        except NotificationError as e:
            return DispatchOutcome(role=role, to_phone=phone, status="failed", response=e.message)
        except Exception as e:
            logger.exception("[DISPATCH] unexpected gateway failure for %s", role)
            return DispatchOutcome(role=role, to_phone=phone, status="failed", response=str(e))

        return DispatchOutcome(
            role=role,
            to_phone=phone,
            status="sent" if result.success else "failed",
            response=result.response,
        )

    async def _audit(self, student_id: str, month: str, message: str, outcome: DispatchOutcome) -> None:
        entry = SmsLogEntry(
            studentId=student_id,
            month=month,
            recipientType=outcome.role,
            toPhone=outcome.to_phone,
            message=message,
            status=outcome.status,
            providerResponse=outcome.response,
        )
        try:
            await asyncio.to_thread(self.store.add_sms_log, entry)
        except StoreError:
            # best-effort audit; the outcome itself still stands
            logger.error("[DISPATCH] could not write sms log for %s/%s %s", student_id, month, outcome.role)


def all_sent(outcomes: Sequence[DispatchOutcome]) -> bool:
    return bool(outcomes) and all(o.sent for o in outcomes)
