from __future__ import annotations

import base64
import hashlib
import logging
import time
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from . import config
from .errors import InvalidToken, NotAuthenticated
from .models import Identity

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def _pw_prehash(pw: str) -> bytes:
    """Pre-hash so bcrypt's 72-byte input limit never truncates a password."""
    return base64.b64encode(hashlib.sha256(pw.encode("utf-8")).digest())


def hash_password(pw: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_pw_prehash(pw), salt).decode("utf-8")


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_pw_prehash(pw), pw_hash.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False


def create_token(user_id: int, username: str, issued_at: Optional[int] = None) -> str:
    iat = int(time.time()) if issued_at is None else issued_at
    claims = {
        "sub": str(user_id),
        "username": username,
        "iat": iat,
        "exp": iat + config.JWT_TTL_SECONDS,
    }
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Identity:
    """Verify signature and expiry; any failure is reported the same way."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        return Identity(id=int(payload["sub"]), username=str(payload["username"]))
    except (JWTError, KeyError, TypeError, ValueError):
        raise InvalidToken()


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Identity:
    if creds is None or not creds.credentials:
        raise NotAuthenticated()
    return decode_token(creds.credentials)
