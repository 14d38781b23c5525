# coachfee/notification/routes.py
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query

from coachfee.core.deps import get_store
from coachfee.core.errors import ValidationError
from coachfee.core.security import get_admin_email
from coachfee.utils.months import current_month_key, is_month_key

router = APIRouter(prefix="/sms-logs", tags=["sms-logs"])


@router.get("")
async def list_sms_logs(
    month: Optional[str] = Query(None),
    status: str = Query("all"),
    admin: str = Depends(get_admin_email),
    store=Depends(get_store),
):
    month = month or current_month_key()
    if not is_month_key(month):
        raise ValidationError("month must be in YYYY-MM format")
    if status not in {"all", "sent", "failed"}:
        raise ValidationError("status must be one of all, sent, failed")

    entries = await asyncio.to_thread(store.list_sms_logs, month, None if status == "all" else status)
    return {
        "month": month,
        "data": [e.model_dump(by_alias=True) for e in entries],
        "total": len(entries),
    }
