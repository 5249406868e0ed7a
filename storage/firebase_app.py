from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials

from config.settings import settings

log = logging.getLogger("kolekkita.firebase")


def get_firebase_app() -> firebase_admin.App:
    """
    Return the default Firebase Admin app, initializing it on first use.

    Uses the service-account file at FIREBASE_CREDENTIALS_PATH when set,
    otherwise Application Default Credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if settings.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(cred, options)
    log.info(
        "firebase_app_initialized",
        extra={"extra": {"event": "firebase_app_initialized", "service_account": bool(settings.FIREBASE_CREDENTIALS_PATH)}},
    )
    return app
