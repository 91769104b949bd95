"""
Firebase Firestore initialization.
Single source of truth for the datastore behind the issue and user stores.

USE_MOCK_DB=true swaps Firestore for the in-process MockDatabase so the
service runs without credentials.
"""

import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore, initialize_app

from app.core.settings import settings
from app.stores.base import IssueStore, UserStore
from app.stores.memory_store import MemoryIssueStore, MemoryUserStore, MockDatabase

logger = logging.getLogger(__name__)

db = None
_issue_store: Optional[IssueStore] = None
_user_store: Optional[UserStore] = None

REQUIRED_CREDENTIAL_FIELDS = ["type", "project_id", "private_key", "client_email"]


def _validate_credentials_file(cred_path: str):
    if not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firestore initialization FAILED - Credentials file not found: {cred_path}\n"
            f"SOLUTION: Check your .env file and ensure FIREBASE_CREDENTIALS_PATH points to a valid service account JSON file."
        )

    try:
        with open(cred_path, "r") as f:
            cred_data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Firebase credentials file is not valid JSON: {e}\nPlease check the file at: {cred_path}")

    missing_fields = [field for field in REQUIRED_CREDENTIAL_FIELDS if field not in cred_data]
    if missing_fields:
        raise RuntimeError(
            f"Firebase credentials file is missing required fields: {missing_fields}\n"
            f"Please download a fresh service account key from Firebase Console."
        )

    logger.info(f"[FIRESTORE] Credentials file validated: {cred_path}")
    logger.info(f"[FIRESTORE] Project ID: {cred_data.get('project_id', 'N/A')}")


def initialize_firebase_app():
    """Initialize the Firebase Admin SDK once (Firestore and Storage share it)."""
    if firebase_admin._apps:
        return

    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    if settings.FIREBASE_CREDENTIALS_PATH:
        _validate_credentials_file(settings.FIREBASE_CREDENTIALS_PATH)
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        initialize_app(cred, options or None)
        logger.info("[FIRESTORE] Firebase Admin SDK initialized with service account")
    else:
        logger.info("[FIRESTORE] No credentials path set, using Application Default Credentials")
        initialize_app(options=options or None)


def initialize_firestore():
    global db

    if db is not None:
        return db

    if settings.USE_MOCK_DB:
        db = MockDatabase(settings.MOCK_DB_PATH)
        logger.info("[FIRESTORE] USING MOCK DATABASE")
        return db

    try:
        initialize_firebase_app()
        db = firestore.client()
    except RuntimeError:
        raise
    except Exception as e:
        error_msg = str(e)
        if "Invalid JWT Signature" in error_msg or "invalid_grant" in error_msg:
            raise RuntimeError(
                f"Firestore initialization FAILED - Invalid JWT Signature.\n"
                f"The service account key has been revoked or belongs to a different project.\n"
                f"SOLUTION: Generate a NEW service account key in Firebase Console and restart.\n\n"
                f"Original error: {error_msg}"
            )
        raise RuntimeError(
            f"Firestore initialization FAILED. Error: {error_msg}\n"
            f"Please check your Firebase credentials and configuration."
        )

    logger.info("[FIRESTORE] USING REAL FIRESTORE DATABASE")
    logger.info(f"[FIRESTORE] Project: {settings.FIREBASE_PROJECT_ID or 'default'}")
    return db


def get_db():
    """Get the datastore client, initializing it on first use."""
    return initialize_firestore()


def get_issue_store() -> IssueStore:
    global _issue_store
    if _issue_store is None:
        datastore = get_db()
        if isinstance(datastore, MockDatabase):
            _issue_store = MemoryIssueStore(datastore)
        else:
            from app.stores.firestore_store import FirestoreIssueStore
            _issue_store = FirestoreIssueStore(datastore)
    return _issue_store


def get_user_store() -> UserStore:
    global _user_store
    if _user_store is None:
        datastore = get_db()
        if isinstance(datastore, MockDatabase):
            _user_store = MemoryUserStore(datastore)
        else:
            from app.stores.firestore_store import FirestoreUserStore
            _user_store = FirestoreUserStore(datastore)
    return _user_store
