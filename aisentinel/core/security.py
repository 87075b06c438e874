from fastapi import HTTPException, status
from jose import jwt, JWTError
from datetime import datetime, timedelta
import secrets
import string
import time
from typing import Optional

from aisentinel.core.config import settings

ALGORITHM = "HS256"
SESSION_TOKEN_PREFIX = "prod-session-"


def generate_session_token(prefix: str = SESSION_TOKEN_PREFIX) -> str:
    """
    prod-session-<epoch ms>-<random>
    The prefix is what the client uses to recognise server-issued tokens.
    """
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(24))
    return f"{prefix}{int(time.time() * 1000)}-{suffix}"


def session_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now + timedelta(days=settings.SESSION_TTL_DAYS)


def create_verification_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.VERIFICATION_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": email.lower(),
        "purpose": "email-verification",
        "jti": secrets.token_hex(8),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_verification_token(token: str) -> str:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[ALGORITHM]
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token"
        )

    if payload.get("purpose") != "email-verification" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token"
        )
    return payload["sub"]
