"""
Security utilities: password hashing, JWT tokens, and Fernet encryption.

Three concerns are handled here:

1. PASSWORD HASHING (Argon2 via passlib)
   Passwords are never stored in plaintext.

2. JWT TOKENS (HS256, signed with SECRET_KEY)
   - Access tokens: issued at login, "sub" is the user id.
   - Admin 2FA session tokens: issued after a successful TOTP or backup
     code check. They carry scope="admin_2fa" and a short expiry
     (ADMIN_2FA_SESSION_MINUTES). The server stores nothing: the token
     itself is the capability, and it stops working when it expires.

3. FERNET ENCRYPTION (AES-128-CBC + HMAC-SHA256)
   Admin TOTP secrets must be recoverable to compute codes, so they are
   encrypted (not hashed) at rest with TOTP_ENCRYPTION_KEY.
"""

from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet
from jose import JWTError, jwt
from passlib.context import CryptContext

from unitedbank.config import settings


TWO_FACTOR_SCOPE = "admin_2fa"


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash (constant time)."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_two_factor_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Issue an admin 2FA session token for user_id."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ADMIN_2FA_SESSION_MINUTES)
    return create_access_token(
        data={"sub": user_id, "scope": TWO_FACTOR_SCOPE},
        expires_delta=expires_delta,
    )


def two_factor_token_subject(token: str) -> str | None:
    """
    Return the user id a 2FA session token was issued to.

    Returns None for expired, tampered or wrongly scoped tokens; an
    ordinary access token is not accepted as proof of 2FA.
    """
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None
    if payload.get("scope") != TWO_FACTOR_SCOPE:
        return None
    return payload.get("sub")


# ---------------------------------------------------------------------------
# 3. Fernet Encryption (for TOTP secrets at rest)
# ---------------------------------------------------------------------------

_fernet = Fernet(settings.TOTP_ENCRYPTION_KEY.encode())


def encrypt_value(plaintext: str) -> bytes:
    """Encrypt a string value for storage in a LargeBinary column."""
    return _fernet.encrypt(plaintext.encode())


def decrypt_value(ciphertext: bytes) -> str:
    """
    Decrypt a Fernet-encrypted value back to plaintext.

    Raises:
        cryptography.fernet.InvalidToken: If the data is corrupted or
            the encryption key doesn't match.
    """
    return _fernet.decrypt(ciphertext).decode()
