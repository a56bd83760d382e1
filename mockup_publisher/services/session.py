"""
Signed session tokens identifying the signed-in shop owner.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import time
from hashlib import sha256
from typing import Any, Callable, Dict, Optional


class InvalidSessionToken(Exception):
    """Raised when a session token is malformed, forged or expired."""


class SessionTokenSigner:
    """Encode and decode session payloads guarded by an HMAC signature."""

    def __init__(
        self,
        secret_key: str,
        *,
        ttl_seconds: int = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def issue(self, email: str) -> str:
        issued_at = self._clock()
        return self.encode(
            {"sub": email, "iat": issued_at, "exp": int(issued_at) + self._ttl_seconds}
        )

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidSessionToken("Malformed session token.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise InvalidSessionToken("Invalid session signature.")
        return json.loads(serialized)

    def verify(self, token: Optional[str]) -> str:
        """Return the session's email, raising when the token is unusable."""
        return self.claims(token)["sub"]

    def claims(self, token: Optional[str]) -> Dict[str, Any]:
        """Return the verified payload of an unexpired session token."""
        if not token:
            raise InvalidSessionToken("Missing session token.")
        payload = self.decode(token)
        if int(payload.get("exp", 0)) < self._clock():
            raise InvalidSessionToken("Session expired.")
        email = payload.get("sub")
        if not email:
            raise InvalidSessionToken("Session token has no subject.")
        return payload


__all__ = ["InvalidSessionToken", "SessionTokenSigner"]
