# file: coachfee/core/security.py
import logging
from typing import Iterable, Optional

from fastapi import Header

from coachfee.core.config import get_admin_emails
from coachfee.core.errors import AuthorizationError
from coachfee.core.logger import log_to_cloud

logger = logging.getLogger("core.security")


def is_admin_email(email: Optional[str], allow_list: Iterable[str]) -> bool:
    if not email or not isinstance(email, str):
        return False
    return email.strip().lower() in {e.strip().lower() for e in allow_list}


def require_admin(email: Optional[str], allow_list: Iterable[str]) -> str:
    """Raise AuthorizationError unless `email` is on the allow-list."""
    if not is_admin_email(email, allow_list):
        logger.warning("Rejected non-admin caller: %s", email)
        log_to_cloud("auth", "WARNING", "admin allow-list rejection", {"email": email})
        raise AuthorizationError("Unauthorized: admin access required")
    return email.strip().lower()


async def get_admin_email(x_admin_email: Optional[str] = Header(None)) -> str:
    """FastAPI dependency for the read-only dashboard endpoints."""
    return require_admin(x_admin_email, get_admin_emails())
