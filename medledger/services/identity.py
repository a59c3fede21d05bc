"""
Caller identity tokens.

Every request is resolved to a stable caller address before it reaches the
registry. Tokens are Fernet tokens (AES-CBC + HMAC) whose plaintext is the
address, so a client cannot forge or alter the identity it presents.

Mint a token for an operator-approved address:
    python -m medledger.services.identity 0xabc...
"""

from __future__ import annotations

import argparse
import logging

from cryptography.fernet import Fernet, InvalidToken

from medledger.config import settings

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Token is missing, malformed, tampered with or expired."""


class IdentityService:
    """Issues and resolves signed caller tokens."""

    def __init__(self, key: str | bytes | None = None, ttl: int | None = None):
        raw_key = key or settings.IDENTITY_SIGNING_KEY
        if raw_key:
            self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)
        else:
            # Tokens signed with a generated key do not survive a restart;
            # production deployments must set IDENTITY_SIGNING_KEY.
            logger.warning("IDENTITY_SIGNING_KEY not set, generating an ephemeral key")
            self._fernet = Fernet(Fernet.generate_key())
        self.ttl = settings.IDENTITY_TOKEN_TTL if ttl is None else ttl

    def issue_token(self, address: str) -> str:
        if not address:
            raise ValueError("Address is required")
        return self._fernet.encrypt(address.encode()).decode()

    def resolve(self, token: str) -> str:
        """Return the address carried by a token, or raise IdentityError."""
        if not token:
            raise IdentityError("Missing identity token")
        try:
            address = self._fernet.decrypt(token.encode(), ttl=self.ttl or None).decode()
        except InvalidToken as exc:
            raise IdentityError("Invalid or expired identity token") from exc
        if not address:
            raise IdentityError("Identity token carries no address")
        return address


def main() -> None:
    ap = argparse.ArgumentParser(description="Issue a caller identity token")
    ap.add_argument("address", help="Caller address to embed in the token")
    args = ap.parse_args()
    print(IdentityService().issue_token(args.address))


if __name__ == "__main__":
    main()
