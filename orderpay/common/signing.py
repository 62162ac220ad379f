"""HMAC-SHA256 webhook signatures with timestamp replay tolerance.

Header format: ``t=<unix-seconds>,v1=<lower-hex hmac>``. The signed string is
``t=<unix-seconds>.<raw body>`` so the signature binds both the exact bytes of
the body and the time it was produced.
"""

import hashlib
import hmac
import re
import time
from typing import Callable

from orderpay.common.errors import AuthenticationError
from orderpay.common.logging import logger


MISSING = "Missing signature"
MALFORMED = "Malformed signature"
BAD_TIMESTAMP = "Bad timestamp"
STALE = "Stale timestamp"
MISMATCH = "Signature mismatch"
NO_SECRET = "Webhook secret not configured"

# ASCII digits only, so the signed string matches the header text exactly.
_TIMESTAMP = re.compile(r"-?[0-9]+")


def _as_bytes(body: bytes | str) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


class WebhookSigner:
    """Signs outbound and verifies inbound payment webhooks with a shared secret."""

    def __init__(
        self,
        secret: str,
        header_name: str = "X-Signature",
        tolerance_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret.encode("utf-8")
        self.header_name = header_name
        self.tolerance_seconds = tolerance_seconds
        self._clock = clock
        if not secret:
            logger.warning("webhook_secret_missing verification=rejecting_all")

    def _digest(self, body: bytes, timestamp: int) -> str:
        signed = f"t={timestamp}.".encode("utf-8") + body
        return hmac.new(self._secret, signed, hashlib.sha256).hexdigest()

    def sign(self, body: bytes | str, timestamp: int | None = None) -> str:
        """Return the signature header value for `body` at `timestamp` (default: now)."""

        if timestamp is None:
            timestamp = int(self._clock())
        return f"t={timestamp},v1={self._digest(_as_bytes(body), timestamp)}"

    def verify(self, header: str | None, body: bytes | str) -> None:
        """Raise `AuthenticationError` with a reason unless `header` signs `body`."""

        if not self._secret:
            raise AuthenticationError(NO_SECRET)
        if header is None or not header.strip():
            raise AuthenticationError(MISSING)

        parts = [part.strip() for part in header.split(",") if part.strip()]
        t_part = next((part for part in parts if part.startswith("t=")), None)
        v1_part = next((part for part in parts if part.startswith("v1=")), None)
        if t_part is None or v1_part is None:
            raise AuthenticationError(MALFORMED)

        raw_timestamp = t_part[len("t="):]
        if not _TIMESTAMP.fullmatch(raw_timestamp):
            raise AuthenticationError(BAD_TIMESTAMP)
        timestamp = int(raw_timestamp)

        if abs(int(self._clock()) - timestamp) > self.tolerance_seconds:
            raise AuthenticationError(STALE)

        expected = self._digest(_as_bytes(body), timestamp)
        provided = v1_part[len("v1="):]
        if not hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
            raise AuthenticationError(MISMATCH)
