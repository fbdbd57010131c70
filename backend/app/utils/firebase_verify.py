import base64
import json
import logging
import os

import firebase_admin
from fastapi import HTTPException, status
from firebase_admin import auth, credentials

from app.config import settings

logger = logging.getLogger(__name__)

_firebase_app = None


def _load_credentials():
    if settings.firebase_credentials_base64:
        try:
            cred_json = base64.b64decode(settings.firebase_credentials_base64).decode("utf-8")
            logger.info("Firebase credentials loaded from base64 environment variable")
            return credentials.Certificate(json.loads(cred_json))
        except (ValueError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load base64 credentials: {e}")

    cred_path = settings.firebase_credentials_path
    if cred_path and os.path.exists(cred_path):
        logger.info(f"Firebase credentials loaded from: {cred_path}")
        return credentials.Certificate(cred_path)

    raise FileNotFoundError(
        "Firebase credentials not found. Set FIREBASE_CREDENTIALS_BASE64 "
        "or FIREBASE_CREDENTIALS_PATH."
    )


def initialize_firebase():
    """Initialize the Firebase Admin SDK once per process."""
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    _firebase_app = firebase_admin.initialize_app(_load_credentials())
    logger.info("Firebase Admin SDK initialized")
    return _firebase_app


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its decoded claims.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not token:
        raise _unauthorized("No authentication token provided")

    if token.startswith("Bearer "):
        token = token[7:]

    try:
        return auth.verify_id_token(token)
    except auth.ExpiredIdTokenError:
        raise _unauthorized("Authentication token has expired")
    except auth.InvalidIdTokenError:
        raise _unauthorized("Invalid authentication token")
    except Exception as e:
        raise _unauthorized(f"Token verification failed: {str(e)}")
