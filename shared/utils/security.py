"""
shared/utils/security.py
Firebase ID token verification. The identity provider owns sign-in;
this service only checks the bearer token and reads the email claim.
"""

import base64
import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from config.settings import settings

logger = logging.getLogger(__name__)


class IdentityVerificationError(Exception):
    """Raised when an ID token is malformed, expired, or revoked."""


# ── Firebase App ──────────────────────────────────────────────

def _load_credentials() -> Optional[credentials.Base]:
    if settings.FIREBASE_SERVICE_KEY_B64:
        decoded = base64.b64decode(settings.FIREBASE_SERVICE_KEY_B64).decode("utf-8")
        return credentials.Certificate(json.loads(decoded))
    try:
        return credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    except (FileNotFoundError, ValueError, OSError):
        return None


def init_firebase() -> bool:
    """
    Initialize the default Firebase app once per process.
    Returns False when no credentials are configured; token checks then fail closed.
    """
    try:
        firebase_admin.get_app()
        return True
    except ValueError:
        pass

    cred = _load_credentials()
    if cred is None:
        logger.warning("Firebase credentials not configured; bearer tokens will be rejected")
        return False

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    firebase_admin.initialize_app(cred, options)
    return True


# ── Token Verification ────────────────────────────────────────

def verify_id_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its decoded claims.
    Raises IdentityVerificationError on any rejection.
    """
    try:
        return firebase_auth.verify_id_token(token)
    except (ValueError, FirebaseError) as e:
        raise IdentityVerificationError(str(e)) from e
