# file: coachfee/core/errors.py


class FeeTrackerError(Exception):
    """Base class; `message` is safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FeeTrackerError):
    status_code = 400


class NotFoundError(ValidationError):
    status_code = 404


class AuthorizationError(FeeTrackerError):
    status_code = 403


class NotificationError(FeeTrackerError):
    # Never surfaced to callers; downgraded to a failed outcome
    status_code = 502


class StoreError(FeeTrackerError):
    status_code = 503
