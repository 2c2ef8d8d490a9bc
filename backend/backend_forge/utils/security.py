"""
Security utilities - Authentication tokens, secret masking
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from backend_forge.config import get_settings


class AuthConfigurationError(RuntimeError):
    """JWT signing secret is not configured"""
    pass


@dataclass(frozen=True)
class TokenSubject:
    """Identity carried by a verified access token"""
    id: str
    email: str


def _jwt_secret() -> str:
    settings = get_settings()
    if not settings.JWT_SECRET_KEY:
        raise AuthConfigurationError("JWT_SECRET_KEY not configured")
    return settings.JWT_SECRET_KEY


# JWT utilities
def create_access_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token"""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    expire = datetime.utcnow() + expires_delta
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "type": "access",
        "exp": expire,
        "iat": datetime.utcnow(),
    }
    return jwt.encode(to_encode, _jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    secret = _jwt_secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[get_settings().JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[TokenSubject]:
    """Verify an access token and return its subject"""
    payload = decode_token(token)
    if payload is None:
        return None
    if payload.get("type") != "access":
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    return TokenSubject(id=str(subject), email=str(payload.get("email") or ""))


def mask_api_key(api_key: Optional[str]) -> str:
    """Mask an API key for display (e.g., sk-...abc123)"""
    if not api_key or len(api_key) <= 8:
        return "***"
    return f"{api_key[:3]}...{api_key[-6:]}"
