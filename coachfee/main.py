# file: coachfee/main.py

# Standard library
import asyncio
import logging

# FastAPI core + responses
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Third-party
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from slowapi.errors import RateLimitExceeded

# ------------------------------
# Routers and core
# ------------------------------
from coachfee.core.config import RECONCILE_INTERVAL_MINUTES
from coachfee.core.deps import session_for, store_for
from coachfee.core.errors import FeeTrackerError
from coachfee.core.logger import setup_logging
from coachfee.core.rate_limit import limiter
from coachfee.notification.routes import router as sms_logs_router
from coachfee.payment.routes import router as payments_router, students_router

setup_logging()
logger = logging.getLogger("main")

# App initialization
app = FastAPI(title="Coaching Fee Tracker API")
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod if needed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------
# Error handlers
# ------------------------------
@app.exception_handler(FeeTrackerError)
async def fee_tracker_error_handler(request: Request, exc: FeeTrackerError):
    if exc.status_code >= 500:
        logger.error("[%s] %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request")
    return JSONResponse(status_code=400, content={"ok": False, "error": message})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"ok": False, "error": "Too many requests. Please slow down.", "limit": str(exc.detail)},
    )


# ------------------------------
# Routers
# ------------------------------
app.include_router(payments_router)
app.include_router(students_router)
app.include_router(sms_logs_router)


# Ping endpoint
@app.get("/ping")
@limiter.limit("5/minute")
async def ping(request: Request):
    return {"message": "pong"}


# ------------------------------
# Reconciled view refresh
# ------------------------------
def refresh_payment_view(target: FastAPI = app) -> None:
    """Rebuild the reconciled view from the store; failures keep the previous view."""
    try:
        session_for(target).load(store_for(target))
    except Exception as e:
        logger.exception("[SCHEDULER] payment view refresh failed: %s", e)


@app.on_event("startup")
async def startup_event():
    await asyncio.to_thread(refresh_payment_view, app)

    scheduler = AsyncIOScheduler()
    scheduler.add_job(refresh_payment_view, "interval", minutes=RECONCILE_INTERVAL_MINUTES, args=[app])
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("[SCHEDULER] payment view refresh every %d minutes", RECONCILE_INTERVAL_MINUTES)


@app.on_event("shutdown")
async def shutdown_event():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    gateway = getattr(app.state, "gateway", None)
    if gateway is not None:
        await gateway.aclose()
