import uuid
from datetime import datetime, timedelta, timezone
from threading import Lock

import jwt

from lawbook.core import config

_revoked_tokens: dict[str, float] = {}
_revoked_lock = Lock()


def create_access_token(subject: str, role: str | None = None, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {"sub": subject, "exp": expire, "iat": datetime.now(timezone.utc), "jti": uuid.uuid4().hex}
    if role:
        payload["role"] = role
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    if payload.get("jti") in _revoked_tokens:
        raise jwt.InvalidTokenError("Token has been revoked")
    return payload


def revoke_access_token(token: str) -> None:
    """Reject ``token`` from now until it would have expired anyway."""
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    now = datetime.now(timezone.utc).timestamp()
    with _revoked_lock:
        for jti, expires_at in list(_revoked_tokens.items()):
            if expires_at <= now:
                del _revoked_tokens[jti]
        _revoked_tokens[payload["jti"]] = float(payload["exp"])
