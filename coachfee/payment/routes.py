# coachfee/payment/routes.py
import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from coachfee.core.config import MARK_PAID_RATE_LIMIT
from coachfee.core.deps import get_orchestrator, get_session, get_store
from coachfee.core.errors import StoreError, ValidationError
from coachfee.core.rate_limit import limiter
from coachfee.core.security import get_admin_email
from coachfee.payment.models import MarkPaidRequest
from coachfee.utils.months import current_month_key, is_month_key, month_options

logger = logging.getLogger("payment.routes")

router = APIRouter(prefix="/payments", tags=["payments"])
students_router = APIRouter(prefix="/students", tags=["students"])


@router.post("/mark-paid")
@limiter.limit(MARK_PAID_RATE_LIMIT)
async def mark_paid(
    request: Request,
    body: MarkPaidRequest,
    orchestrator=Depends(get_orchestrator),
    store=Depends(get_store),
    session=Depends(get_session),
):
    result = await orchestrator.mark_paid(body.student_id, body.month, str(body.admin_email))

    # Re-read the authoritative store; the optimistic entry covers a failed reload
    try:
        await asyncio.to_thread(session.load, store)
    except StoreError as e:
        logger.warning("[MARK PAID] reload after commit failed: %s", e.message)

    return {"ok": True, **result.model_dump()}


@router.get("/months")
async def list_months():
    return {"current": current_month_key(), "options": month_options()}


@router.get("/{month}")
async def month_status(
    month: str,
    admin: str = Depends(get_admin_email),
    store=Depends(get_store),
    session=Depends(get_session),
):
    """Reconciled paid/unpaid state of every active student for one month."""
    if not is_month_key(month):
        raise ValidationError("month must be in YYYY-MM format")

    if session.loaded_at is None:
        await asyncio.to_thread(session.load, store)

    payments = session.for_month(month)
    rows = []
    for student in await asyncio.to_thread(store.list_students):
        if not student.active:
            continue
        rec = payments.get(student.id)
        rows.append({
            "studentId": student.id,
            "name": student.name,
            "status": rec.status if rec else "unpaid",
            "paymentId": rec.id if rec else None,
            "updatedAt": rec.updated_at.isoformat() if rec and rec.updated_at else None,
        })

    paid = sum(1 for r in rows if r["status"] == "paid")
    return {
        "month": month,
        "data": rows,
        "total": len(rows),
        "paid": paid,
        "unpaid": len(rows) - paid,
        "studentField": session.student_field,
        "loadedAt": session.loaded_at.isoformat() if session.loaded_at else None,
    }


@students_router.get("")
async def list_students(
    admin: str = Depends(get_admin_email),
    store=Depends(get_store),
):
    """Students with each contact number checked against the send-path normalizer."""
    students = await asyncio.to_thread(store.list_students)
    return {
        "data": [
            {
                "id": s.id,
                "name": s.name,
                "active": s.active,
                "contacts": s.contacts(),
            }
            for s in students
        ]
    }
