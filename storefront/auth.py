"""
Authentication gate and session table.

authenticate() is a pure check over a Document snapshot. SessionRegistry keeps
the per-client state: a token is either unknown (anonymous) or maps to an
Identity until logout or expiry.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional

from .errors import Unauthenticated, Unauthorized
from .models import Document, User
from .security import hash_password, sign, unsign, verify_password

logger = logging.getLogger(__name__)

ROLE_RANK = {"user": 0, "admin": 1}


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # verified against when the email is unknown, so both failure paths cost one argon2 check
    return hash_password(secrets.token_urlsafe(16))


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    name: str
    role: str
    expires_at: float

    def to_dict(self) -> dict:
        return {"id": self.user_id, "email": self.email, "name": self.name, "role": self.role}


def find_user_by_email(document: Document, email: str) -> Optional[User]:
    wanted = (email or "").strip().casefold()
    if not wanted:
        return None
    for user in document.users:
        if user.email.strip().casefold() == wanted:
            return user
    return None


def authenticate(email: str, password: str, document: Document) -> User:
    user = find_user_by_email(document, email)
    if user is None:
        verify_password(password or "", _dummy_hash())
        raise Unauthenticated()
    if not verify_password(password or "", user.password):
        raise Unauthenticated()
    return user


def require_role(identity: Optional[Identity], role: str) -> Identity:
    if identity is None:
        raise Unauthenticated("Login required")
    if ROLE_RANK.get(identity.role, -1) < ROLE_RANK[role]:
        raise Unauthorized("Admin access required" if role == "admin" else None)
    return identity


class SessionRegistry:
    def __init__(self, secret: str, ttl_seconds: int = 86400, clock=time.time):
        self._secret = secret
        self._ttl = max(60, ttl_seconds)
        self._clock = clock
        self._sessions: Dict[str, Identity] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        expired = [sid for sid, ident in self._sessions.items() if ident.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug("Dropped %d expired sessions", len(expired))

    def issue(self, user: User) -> str:
        sid = secrets.token_urlsafe(32)
        now = self._clock()
        identity = Identity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._prune(now)
            self._sessions[sid] = identity
        logger.info("Session opened for user %s (%s)", user.id, user.role)
        return sign(sid, self._secret)

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        sid = unsign(token, self._secret)
        if sid is None:
            return None
        with self._lock:
            identity = self._sessions.get(sid)
            if identity is None:
                return None
            if identity.expires_at <= self._clock():
                del self._sessions[sid]
                return None
            return identity

    def revoke(self, token: Optional[str]) -> bool:
        sid = unsign(token, self._secret)
        if sid is None:
            return False
        with self._lock:
            return self._sessions.pop(sid, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
