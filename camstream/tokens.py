"""Signed, time-bound capability tokens for session artifact reads.

A token is carried as three query parameters::

    ?sid=<session id>&expires=<unix seconds>&signature=<hex hmac-sha256>

The signature covers ``"<sid>:<expires>"`` with the server-held secret. A token
stays valid while ``now <= expires``; one second later it is expired.
"""
from __future__ import annotations

import enum
import hashlib
import hmac
import re
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from .exceptions import (
    AccessDenied,
    SessionMismatch,
    TokenExpired,
    TokenForged,
    TokenMalformed,
)
from .session_keys import is_safe_session_id

_SIGNATURE_PATTERN = re.compile(r"[0-9a-f]{64}")
_EXPIRES_PATTERN = re.compile(r"[0-9]{1,12}")


class TokenStatus(enum.Enum):
    """Outcome of verifying a capability token."""

    OK = "ok"
    EXPIRED = "expired"
    FORGED = "forged"
    MALFORMED = "malformed"
    SESSION_MISMATCH = "session-mismatch"


_STATUS_ERRORS: dict[TokenStatus, type[AccessDenied]] = {
    TokenStatus.EXPIRED: TokenExpired,
    TokenStatus.FORGED: TokenForged,
    TokenStatus.MALFORMED: TokenMalformed,
    TokenStatus.SESSION_MISMATCH: SessionMismatch,
}


@dataclass(frozen=True)
class CapabilityToken:
    """Proof that the holder may read one session's artifacts until ``expires``."""

    session_id: str
    expires: int
    signature: str

    def to_query(self) -> dict[str, str]:
        return {
            "sid": self.session_id,
            "expires": str(self.expires),
            "signature": self.signature,
        }

    @classmethod
    def from_query(cls, params: Mapping[str, object]) -> Optional["CapabilityToken"]:
        """Parse query parameters, returning ``None`` when they are structurally invalid."""

        session_id = params.get("sid")
        expires = params.get("expires")
        signature = params.get("signature")
        if not isinstance(session_id, str) or not is_safe_session_id(session_id):
            return None
        if not isinstance(expires, str) or not _EXPIRES_PATTERN.fullmatch(expires):
            return None
        if not isinstance(signature, str) or not _SIGNATURE_PATTERN.fullmatch(signature):
            return None
        return cls(session_id=session_id, expires=int(expires), signature=signature)


class TokenCodec:
    """Issue and verify capability tokens with a keyed SHA-256 hash."""

    def __init__(self, secret: str | bytes, *, clock: Callable[[], float] = time.time) -> None:
        key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        if not key:
            raise ValueError("Token secret must not be empty")
        self._key = key
        self._clock = clock

    def now(self) -> int:
        return int(self._clock())

    def issue(self, session_id: str, ttl_seconds: int) -> CapabilityToken:
        if not is_safe_session_id(session_id):
            raise ValueError(f"Refusing to sign unsafe session id {session_id!r}")
        ttl = int(ttl_seconds)
        if ttl <= 0:
            raise ValueError("Token lifetime must be positive")
        expires = self.now() + ttl
        return CapabilityToken(
            session_id=session_id,
            expires=expires,
            signature=self._sign(session_id, expires),
        )

    def verify(self, params: Mapping[str, object], expected_session_id: str) -> TokenStatus:
        status, _token = self._evaluate(params, expected_session_id)
        return status

    def require(self, params: Mapping[str, object], expected_session_id: str) -> CapabilityToken:
        """Like :meth:`verify` but raise the matching :class:`AccessDenied` subclass."""

        status, token = self._evaluate(params, expected_session_id)
        if token is None or status is not TokenStatus.OK:
            raise _STATUS_ERRORS[status](f"Capability token rejected: {status.value}")
        return token

    def _evaluate(
        self,
        params: Mapping[str, object],
        expected_session_id: str,
    ) -> tuple[TokenStatus, Optional[CapabilityToken]]:
        token = CapabilityToken.from_query(params)
        if token is None:
            return TokenStatus.MALFORMED, None
        expected_signature = self._sign(token.session_id, token.expires)
        if not hmac.compare_digest(expected_signature, token.signature):
            return TokenStatus.FORGED, token
        expected_subject = str(expected_session_id).encode("utf-8")
        if not hmac.compare_digest(token.session_id.encode("utf-8"), expected_subject):
            return TokenStatus.SESSION_MISMATCH, token
        if self.now() > token.expires:
            return TokenStatus.EXPIRED, token
        return TokenStatus.OK, token

    def _sign(self, session_id: str, expires: int) -> str:
        message = f"{session_id}:{expires}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()


__all__ = ["CapabilityToken", "TokenCodec", "TokenStatus"]
