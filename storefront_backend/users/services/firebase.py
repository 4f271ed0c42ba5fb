# users/services/firebase.py

"""
FIREBASE ADMIN (ID-token verification only)

Credentials:
- FIREBASE_CREDENTIALS_FILE -> service-account certificate
- otherwise Application Default Credentials
FIREBASE_PROJECT_ID is passed as the app's projectId so tokens can be
verified without a full service account.
"""

from __future__ import annotations

import threading

import firebase_admin
from django.conf import settings
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

_init_lock = threading.Lock()


def init_firebase_admin() -> None:
    """Initialize the default Firebase app exactly once."""
    if firebase_admin._apps:
        return

    with _init_lock:
        if firebase_admin._apps:
            return

        cred_file = getattr(settings, "FIREBASE_CREDENTIALS_FILE", "")
        cred = (
            credentials.Certificate(cred_file)
            if cred_file
            else credentials.ApplicationDefault()
        )

        options = {}
        project_id = getattr(settings, "FIREBASE_PROJECT_ID", "")
        if project_id:
            options["projectId"] = project_id

        firebase_admin.initialize_app(cred, options or None)


def verify_firebase_id_token(id_token: str) -> dict:
    """
    Returns the decoded token claims (uid, email, name, picture, email_verified).
    Raises firebase_admin / ValueError errors on invalid tokens.
    """
    init_firebase_admin()
    return firebase_auth.verify_id_token(id_token)
