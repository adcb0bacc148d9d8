"""
Authentication boundary.

Credentials are checked against the configured writer and manager accounts
and exchanged for a signed JWT. Revoked tokens are tracked per service
instance so tests and processes can swap in their own.
"""

import hmac
import logging
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

import jwt
from pydantic import BaseModel

from ..util.clock import utc_now
from ..util.ids import new_id

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class Role(str, Enum):
    writer = "writer"
    manager = "manager"


class Identity(BaseModel):
    email: str
    role: Role


class AuthenticationError(Exception):
    pass


class AuthService:
    def __init__(
        self,
        accounts: Dict[str, Tuple[str, Role]],
        secret: str,
        expires_hours: int = 24,
    ):
        """
        Args:
            accounts: email -> (password, role)
            secret: HMAC key for issued tokens
        """
        self.accounts = accounts
        self.secret = secret
        self.expires_hours = expires_hours
        # token -> exp (epoch seconds); entries go once the token has expired anyway
        self._revoked: Dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings) -> "AuthService":
        accounts = {
            settings.writer_email: (settings.writer_password, Role.writer),
            settings.manager_auth_email: (settings.manager_password, Role.manager),
        }
        return cls(accounts, settings.jwt_secret, settings.jwt_expires_hours)

    def login(self, email: str, password: str) -> Tuple[str, Identity]:
        account = self.accounts.get(email)
        if account is None or not hmac.compare_digest(
            account[0].encode("utf-8"), password.encode("utf-8")
        ):
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")

        identity = Identity(email=email, role=account[1])
        issued = utc_now()
        claims = {
            "email": identity.email,
            "role": identity.role.value,
            "iat": issued,
            "exp": issued + timedelta(hours=self.expires_hours),
            "jti": new_id(),
        }
        token = jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)
        logger.info("%s logged in as %s", email, identity.role.value)
        return token, identity

    def verify(self, token: str) -> Optional[Identity]:
        if token in self._revoked:
            return None
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
            )
            return Identity(email=claims["email"], role=Role(claims["role"]))
        except (jwt.InvalidTokenError, KeyError, ValueError):
            return None

    def is_revoked(self, token: str) -> bool:
        return token in self._revoked

    def revoke(self, token: str) -> None:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": False},
            )
            expires = int(claims["exp"])
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            # Not one of ours: verify() rejects it already
            return

        self._prune_revoked()
        self._revoked[token] = expires

    def _prune_revoked(self) -> None:
        now = utc_now().timestamp()
        for token, expires in list(self._revoked.items()):
            if expires <= now:
                del self._revoked[token]
