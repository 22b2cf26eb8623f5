from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from chambita.errors import Unauthenticated
from chambita.models import Subject

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME = "7d"
_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def parse_token_lifetime(raw: str | int) -> timedelta:
    """Parse ``3600``, ``"45m"``, ``"12h"`` or ``"7d"`` style lifetimes."""
    if isinstance(raw, int):
        return timedelta(seconds=raw)
    match = _DURATION_PATTERN.match(raw)
    if match is None:
        raise ValueError(f"Invalid token lifetime: {raw!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class TokenService:
    def __init__(self, secret: str, lifetime: timedelta) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty.")
        self._secret = secret
        self.lifetime = lifetime

    def issue(self, *, subject_id: str, email: str, role: str) -> str:
        expires_at = datetime.now(UTC) + self.lifetime
        claims = {"subjectId": subject_id, "email": email, "role": role, "exp": expires_at}
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def decode(self, token: str) -> Subject:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise Unauthenticated("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise Unauthenticated("Invalid token") from exc

        subject_id = claims.get("subjectId")
        if not isinstance(subject_id, str) or not subject_id:
            raise Unauthenticated("Invalid token")
        return Subject(
            subject_id=subject_id,
            email=str(claims.get("email", "")),
            role=str(claims.get("role", "")),
        )


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not isinstance(authorization, str):
        raise Unauthenticated("Missing or invalid authorization header")
    scheme, _, credentials = authorization.partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != "bearer" or not credentials:
        raise Unauthenticated("Missing or invalid authorization header")
    return credentials
