"""Firebase app initialisation and the process-wide tree store."""
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from attendance_admin.config import settings
from attendance_admin.store import FirebaseTreeStore, MemoryTreeStore, TreeStore

logger = logging.getLogger(__name__)

_firebase_app = None
_store: Optional[TreeStore] = None


def _get_firebase_app():
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app
    cred = credentials.Certificate(settings.firebase_credentials_path)
    _firebase_app = firebase_admin.initialize_app(
        cred, {"databaseURL": settings.firebase_database_url}
    )
    return _firebase_app


def init_store(store: Optional[TreeStore] = None) -> TreeStore:
    """Install ``store``, or build one from settings if none is installed yet."""
    global _store
    if store is not None:
        _store = store
        return _store
    if _store is not None:
        return _store
    if settings.firebase_enabled:
        _store = FirebaseTreeStore(_get_firebase_app())
        logger.info(f"Connected to Firebase Realtime Database at {settings.firebase_database_url}")
    else:
        logger.warning(
            "FIREBASE_CREDENTIALS_PATH or FIREBASE_DATABASE_URL not set. "
            "Using an in-process tree store; data will not be persisted."
        )
        _store = MemoryTreeStore()
    return _store


def get_store() -> TreeStore:
    if _store is None:
        return init_store()
    return _store


def close_store() -> None:
    """Drop the installed store (and the Firebase app, if one was created)."""
    global _store, _firebase_app
    _store = None
    if _firebase_app is not None:
        firebase_admin.delete_app(_firebase_app)
        _firebase_app = None
