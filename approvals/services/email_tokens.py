"""
Signed approve/reject links for manager emails.

Token layout (base64url, no padding):
    "<submission_id>:<action>:<issued_at_ms>:<hex hmac-sha256>"
"""

import base64
import binascii
import hashlib
import hmac
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from ..util.clock import utc_now

logger = logging.getLogger(__name__)


class EmailAction(str, Enum):
    approve = "approve"
    reject = "reject"


class EmailActionClaim(BaseModel):
    submission_id: str
    action: EmailAction
    issued_at_ms: int


class EmailActionSigner:
    """Issues and verifies email-action tokens"""

    def __init__(
        self,
        secret: str,
        max_age_seconds: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._secret = secret.encode("utf-8")
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate(self, submission_id: str, action: EmailAction) -> str:
        action = EmailAction(action)
        payload = f"{submission_id}:{action.value}:{self._now_ms()}"
        raw = f"{payload}:{self._sign(payload)}".encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    def verify(self, token: str) -> Optional[EmailActionClaim]:
        """
        Return the claim carried by a token, or None when the token is
        malformed, tampered with, names an unknown action or has expired.
        """
        try:
            padded = token + "=" * (-len(token) % 4)
            decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError):
            logger.warning("Rejected undecodable email-action token")
            return None

        parts = decoded.split(":")
        if len(parts) != 4:
            logger.warning("Rejected malformed email-action token")
            return None

        submission_id, action, issued_at, signature = parts
        expected = self._sign(f"{submission_id}:{action}:{issued_at}")
        if not hmac.compare_digest(signature, expected):
            logger.warning("Rejected email-action token with bad signature")
            return None

        if action not in (EmailAction.approve.value, EmailAction.reject.value):
            return None
        if not issued_at.isdigit():
            return None

        issued_at_ms = int(issued_at)
        if self.max_age_seconds > 0:
            age_ms = self._now_ms() - issued_at_ms
            if age_ms > self.max_age_seconds * 1000:
                logger.info("Rejected expired email-action token for %s", submission_id)
                return None

        return EmailActionClaim(
            submission_id=submission_id,
            action=EmailAction(action),
            issued_at_ms=issued_at_ms,
        )
