"""
Firebase Admin bootstrap.

The service account key is supplied base64-encoded in FIREBASE_ADMIN_KEY
so it can live in a single environment variable.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional

from vidqa.core.config import Settings
from vidqa.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

APP_NAME = "vidqa"


def decode_service_account(encoded: str) -> Dict[str, Any]:
    """Decode a base64-encoded service account JSON document."""
    try:
        return json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"FIREBASE_ADMIN_KEY is not valid base64 JSON: {e}") from e


def get_firebase_app(settings: Settings):
    """Initialize the Firebase app once and return it."""
    import firebase_admin
    from firebase_admin import credentials

    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass  # Not initialized yet

    if not settings.firebase_admin_key:
        raise ConfigurationError("FIREBASE_ADMIN_KEY is required for Firebase services")

    cert = credentials.Certificate(decode_service_account(settings.firebase_admin_key))
    options: Optional[Dict[str, str]] = None
    if settings.storage_bucket_id:
        options = {"storageBucket": settings.storage_bucket_id}

    app = firebase_admin.initialize_app(cert, options, name=APP_NAME)
    logger.info(f"Initialized Firebase app (project={app.project_id})")
    return app


def get_firestore_client(settings: Settings):
    """Firestore client for the configured project."""
    from firebase_admin import firestore

    return firestore.client(app=get_firebase_app(settings))


def get_storage_bucket(settings: Settings):
    """Cloud Storage bucket holding uploaded videos."""
    from firebase_admin import storage

    if not settings.storage_bucket_id:
        raise ConfigurationError("STORAGE_BUCKET_ID is required for Firebase storage")
    return storage.bucket(settings.storage_bucket_id, app=get_firebase_app(settings))
