import secrets
from datetime import datetime, timedelta, UTC

import bcrypt
import pyotp
from jose import JWTError, jwt

from wealthmap.config import settings
from wealthmap.core.exceptions import UnauthorizedException


def create_access_token(
    user_id: int,
    company_id: int,
    role: str,
    mfa_verified: bool = False,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed session token.

    Claims: ``sub`` (user id), ``company``, ``role``, ``mfa`` (TOTP verified at
    login), ``iat`` and ``exp``.
    """
    now = datetime.now(UTC)
    expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "company": company_id,
        "role": role,
        "mfa": mfa_verified,
        "iat": int(now.timestamp()),
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and validate JWT token using the configured SECRET_KEY.

    Args:
        token: JWT access token from Authorization header

    Returns:
        Decoded token payload with 'sub' (user_id), 'exp', 'iat', etc.

    Raises:
        UnauthorizedException: If token invalid, expired, or malformed
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {str(e)}")

    # Validate expiration (jose checks this automatically)
    if payload.get("exp") is None:
        raise UnauthorizedException("Token missing expiration")

    if payload.get("sub") is None:
        raise UnauthorizedException("Token missing user identifier")

    return payload


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured work factor."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_invitation_token() -> str:
    """256-bit random token, hex encoded."""
    return secrets.token_hex(32)


def generate_mfa_secret() -> str:
    return pyotp.random_base32()


def mfa_provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.MFA_ISSUER)


def verify_mfa_code(secret: str, code: str) -> bool:
    """Check a 6-digit TOTP code, allowing one step of clock drift."""
    if not code or len(code) != 6 or not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, valid_window=1)
