# file: coachfee/core/config.py
import os
import logging

logger = logging.getLogger("core.config")

# ==============================
# Firestore collections
# ==============================
COLLECTIONS = {
    "STUDENTS": "students",
    "PAYMENTS": "payments",
    "SETTINGS": "settings",
    "SMS_LOGS": "sms_logs",
}

# Whole payments collection is expected to fit in one page
PAYMENTS_PAGE_LIMIT = int(os.getenv("PAYMENTS_PAGE_LIMIT", "5000"))

# ==============================
# Firebase
# ==============================
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
CREDENTIAL_SOURCE = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

# ==============================
# SMS gateway (TextBee)
# ==============================
TEXTBEE_BASE_URL = os.getenv("TEXTBEE_BASE_URL", "https://api.textbee.dev/api/v1")
TEXTBEE_API_KEY = os.getenv("TEXTBEE_API_KEY")
TEXTBEE_DEVICE_ID = os.getenv("TEXTBEE_DEVICE_ID")
SMS_HTTP_TIMEOUT = float(os.getenv("SMS_HTTP_TIMEOUT", "15"))

# Bounded wait on the notification step
NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "20"))
NOTIFY_POLL_INTERVAL_SECONDS = float(os.getenv("NOTIFY_POLL_INTERVAL_SECONDS", "0.7"))

# ==============================
# App
# ==============================
RECONCILE_INTERVAL_MINUTES = int(os.getenv("RECONCILE_INTERVAL_MINUTES", "15"))
MARK_PAID_RATE_LIMIT = os.getenv("MARK_PAID_RATE_LIMIT", "30/minute")
USE_CLOUD_LOGGING = os.getenv("USE_CLOUD_LOGGING", "").lower() in {"1", "true", "yes"}

DEFAULT_COACHING_NAME = "Coaching Center"
DEFAULT_SMS_TEMPLATE = (
    "Hi {name}, your coaching fee for {month} has been received. "
    "Thank you. - {coachingName}"
)


def get_admin_emails() -> frozenset:
    """
    Administrator allow-list from ADMIN_EMAILS (comma separated).
    Read on every call so a redeploy with new env takes effect without code changes.
    """
    raw = os.getenv("ADMIN_EMAILS", "")
    emails = frozenset(e.strip().lower() for e in raw.split(",") if e.strip())
    if not emails:
        logger.warning("ADMIN_EMAILS is empty; every mark-paid call will be rejected")
    return emails
