"""Signed bearer tokens identifying API callers."""

from __future__ import annotations

import os
from dataclasses import dataclass

from itsdangerous import BadSignature, URLSafeTimedSerializer

DEFAULT_EXPIRY = int(os.environ.get("TOKEN_EXPIRY", 60 * 60 * 12))
AUTH_SALT = "auth"


class InvalidToken(Exception):
    pass


@dataclass(slots=True, frozen=True)
class CurrentUser:
    id: int
    role: str


def _serializer(secret: str | None = None) -> URLSafeTimedSerializer:
    secret = secret or os.environ.get("SIGNING_SECRET", "change-me")
    return URLSafeTimedSerializer(secret_key=secret)


def issue_token(user_id: int, role: str, *, secret: str | None = None) -> str:
    return _serializer(secret).dumps({"user_id": user_id, "role": role}, salt=AUTH_SALT)


def load_user(token: str, *, secret: str | None = None, max_age: int = DEFAULT_EXPIRY) -> CurrentUser:
    try:
        data = _serializer(secret).loads(token, max_age=max_age, salt=AUTH_SALT)
    except BadSignature as exc:
        raise InvalidToken("Invalid or expired token") from exc
    if not isinstance(data, dict) or "user_id" not in data or "role" not in data:
        raise InvalidToken("Malformed token payload")
    return CurrentUser(id=int(data["user_id"]), role=str(data["role"]))
