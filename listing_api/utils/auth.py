"""
JWT helpers for the identity provider.
Issues access and password-reset tokens and validates them back into a payload.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from listing_api.config import settings

ACCESS_TOKEN = "access"
PASSWORD_RESET_TOKEN = "password_reset"


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, uid: str, email: str, token_type: str, exp: datetime):
        self.uid = uid
        self.email = email
        self.token_type = token_type
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            uid=data["sub"],
            email=data["email"],
            token_type=data["type"],
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


def _encode(uid: str, email: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": uid,  # Subject (identity id)
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(uid: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token for an identity.

    Args:
        uid: Identity subject id
        email: Identity email address
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(uid, email, ACCESS_TOKEN, lifetime)


def create_password_reset_token(uid: str, email: str) -> str:
    """Create a short-lived token authorizing one password reset."""
    lifetime = timedelta(minutes=settings.password_reset_expire_minutes)
    return _encode(uid, email, PASSWORD_RESET_TOKEN, lifetime)


def verify_token(token: str, token_type: str = ACCESS_TOKEN) -> TokenPayload:
    """
    Verify and decode JWT token.

    Args:
        token: JWT token string
        token_type: Expected token type

    Returns:
        Decoded TokenPayload

    Raises:
        ExpiredSignatureError: If the token has expired
        JWTError: If the token is otherwise invalid
    """
    # jwt.decode checks the signature and raises ExpiredSignatureError past exp
    payload = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm]
    )

    if payload.get("type") != token_type:
        raise JWTError(f"Invalid token type. Expected {token_type}")

    if not payload.get("sub") or not payload.get("email") or not payload.get("exp"):
        raise JWTError("Invalid token payload")

    return TokenPayload.from_dict(payload)

