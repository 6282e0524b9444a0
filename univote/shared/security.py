"""
Shared security utilities.

Covers:
  - Password hashing (bcrypt via passlib)
  - Access tokens for voters and admins (HS256 JWT via python-jose)
  - Vote reference hashes (SHA-256 over the ballot fields and cast time)

About the vote hash
-------------------
The vote hash is a display reference shown to the voter after casting and
usable to look the ballot up again. It is derived from mutable inputs plus
wall-clock time, so it proves nothing about voter intent to a third party
and is not a commitment scheme. Duplicate prevention never depends on it.
"""

import hashlib
import os
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt via passlib."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return pwd_context.verify(password, hashed)


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", "24"))

ROLE_VOTER = "voter"
ROLE_ADMIN = "admin"


class TokenError(Exception):
    """Raised when an access token is missing, malformed or expired."""


def create_access_token(subject, role: str, email: str, hours: int | None = None) -> str:
    """Issue a signed token for a voter or admin id."""
    expires = datetime.now(timezone.utc) + timedelta(hours=hours or JWT_EXPIRY_HOURS)
    claims = {"sub": str(subject), "role": role, "email": email, "exp": expires}
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims or raise TokenError."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        msg = "Token expired" if "expired" in str(e).lower() else "Invalid token"
        raise TokenError(msg) from e
    if "sub" not in payload or "role" not in payload:
        raise TokenError("Invalid token")
    try:
        UUID(str(payload["sub"]))
    except ValueError as e:
        raise TokenError("Invalid token") from e
    return payload


# ---------------------------------------------------------------------------
# Vote hash
# ---------------------------------------------------------------------------

def generate_vote_hash(voter_id, candidate_id, election_id, wallet_address: str,
                       cast_at: datetime | None = None) -> str:
    """SHA-256 reference for a ballot: ids, wallet and cast time in milliseconds."""
    cast_at = cast_at or datetime.now(timezone.utc)
    millis = int(cast_at.timestamp() * 1000)
    data = f"{voter_id}-{candidate_id}-{election_id}-{wallet_address}-{millis}"
    return hashlib.sha256(data.encode()).hexdigest()
