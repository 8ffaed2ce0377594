# vehicle_monitor/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

import bcrypt
import jwt
from fastapi import Request

from .config import JWT_SECRET, JWT_ALGORITHM, TOKEN_EXPIRY_DAYS, BCRYPT_ROUNDS
from .exceptions import AuthenticationError
from .schemas import TokenPayload

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def issue_token(user_id: int, username: str, expires_in: Optional[timedelta] = None) -> str:
    """Signs a bearer token binding the user id and username."""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "username": username,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=TOKEN_EXPIRY_DAYS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[TokenPayload]:
    """
    Checks signature and expiry. Returns the identity claims,
    or None for any invalid token; never raises.
    """
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None

    user_id = claims.get("userId")
    username = claims.get("username")
    if not isinstance(user_id, int) or not isinstance(username, str):
        return None
    return TokenPayload(user_id=user_id, username=username)


def _password_bytes(plain: str) -> bytes:
    # bcrypt only uses the first 72 bytes
    return plain.encode("utf-8")[:72]


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def compare_password(plain: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def get_token_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    auth_header = headers.get("authorization") or headers.get("Authorization")
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):].strip() or None
    return None


def authenticate(headers: Mapping[str, str]) -> Optional[TokenPayload]:
    """
    Resolves the caller from an Authorization header.
    A missing header, a wrong prefix and a bad token all give None.
    """
    token = get_token_from_headers(headers)
    if not token:
        return None
    return verify_token(token)


def require_auth(request: Request) -> TokenPayload:
    """FastAPI dependency: the caller's identity or a uniform 401."""
    payload = authenticate(request.headers)
    if payload is None:
        logger.warning(f"Unauthorized request to {request.url.path}")
        raise AuthenticationError()
    return payload
