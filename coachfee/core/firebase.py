# file: coachfee/core/firebase.py
import os
import json
import logging
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore

from coachfee.core.config import FIREBASE_PROJECT_ID, CREDENTIAL_SOURCE

logger = logging.getLogger("core.firebase")


def _load_credentials(source: str):
    # Case 1: it's a file path
    if os.path.exists(source):
        logger.info("Loading Firebase credentials from file: %s", source)
        return credentials.Certificate(source)
    # Case 2: it's a raw JSON string
    logger.info("Loading Firebase credentials from raw JSON string")
    try:
        return credentials.Certificate(json.loads(source))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in GOOGLE_APPLICATION_CREDENTIALS: {e}")


@lru_cache(maxsize=1)
def get_db():
    """
    Initialize firebase_admin on first use and return the Firestore client.
    """
    if not CREDENTIAL_SOURCE:
        raise ValueError("GOOGLE_APPLICATION_CREDENTIALS env var is not set")

    try:
        if not firebase_admin._apps:
            options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
            app = firebase_admin.initialize_app(_load_credentials(CREDENTIAL_SOURCE), options)
            logger.info("Firebase initialized with project: %s", app.project_id)
        db = firestore.client()
        logger.info("Firestore client project: %s", db.project)
        return db
    except Exception as e:
        logger.exception("Failed to initialize Firebase Firestore: %s", e)
        raise
