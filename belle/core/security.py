"""
Password hashing and session tokens.

Tokens are JWTs bound to a ``LoginSession`` through the ``sid`` claim; the
``type`` claim keeps access and refresh tokens from being used for one
another.
"""

from datetime import timedelta
from typing import Any, Dict, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

from belle.core.config import settings
from belle.core.timeutils import utcnow


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"

BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


class SecurityManager:
    """Hashes passwords and issues/validates session tokens."""

    def __init__(self):
        self.secret_key = settings.secret_key
        self.algorithm = settings.jwt_algorithm
        self.lifetimes = {
            ACCESS: timedelta(minutes=settings.jwt_access_token_expire_minutes),
            REFRESH: timedelta(days=settings.jwt_refresh_token_expire_days),
        }

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(_bcrypt_input(password))

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)

    def issue_token(self, claims: Dict[str, Any], token_type: str, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = dict(claims)
        to_encode["exp"] = utcnow() + (expires_delta or self.lifetimes[token_type])
        to_encode["type"] = token_type
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_token_pair(self, profile_id, session_id, email: str, role: str) -> Dict[str, str]:
        """Access and refresh tokens for one login session."""
        claims = {"sub": str(profile_id), "sid": str(session_id), "email": email, "role": role}
        return {
            "access_token": self.issue_token(claims, ACCESS),
            "refresh_token": self.issue_token(claims, REFRESH),
            "token_type": "bearer",
        }

    def verify_token(self, token: str, token_type: str = ACCESS) -> Optional[Dict[str, Any]]:
        """Decoded claims, or None when the token is invalid, expired or of the wrong type."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type") != token_type:
            return None
        return payload


# Global security manager
security = SecurityManager()
