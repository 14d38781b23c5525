# file: coachfee/core/logger.py
import logging

from coachfee.core.config import USE_CLOUD_LOGGING

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """
    Route stdlib logging to Google Cloud Logging when enabled,
    otherwise to stderr with the usual format.
    """
    if USE_CLOUD_LOGGING:
        import google.cloud.logging

        client = google.cloud.logging.Client()
        client.setup_logging(log_level=level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)


def log_to_cloud(category: str, severity: str, message: str, metadata: dict = None):
    logging.log(
        getattr(logging, severity.upper(), logging.INFO),
        f"[{category}] {message}",
        extra={"metadata": metadata or {}},
    )
