from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import secrets

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import Settings
from app.core.exceptions import InvalidToken

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(
        settings: Settings,
        subject: str,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issues a signed session token carrying the user sid, email and role.
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": subject,
        "email": email,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry. Returns sub/email/role or raises InvalidToken.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise InvalidToken()

    if not payload.get("sub"):
        raise InvalidToken()

    return {
        "sub": payload["sub"],
        "email": payload.get("email"),
        "role": payload.get("role"),
    }


def generate_one_shot_token() -> str:
    # 32 bytes of entropy, hex encoded
    return secrets.token_hex(32)


def tokens_match(candidate: Optional[str], stored: Optional[str]) -> bool:
    if not candidate or not stored:
        return False
    return secrets.compare_digest(candidate.encode(), stored.encode())
