"""
Origin-based authentication.

``SignedOriginAuth`` accepts any ``Origin`` that names an account and
optionally checks a keyed BLAKE2b signature over the account id when the
account has a registered secret.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional

from ..constants import VALID_ACCOUNT_PATTERN
from ..exceptions import UnauthorizedError
from .interfaces import AuthProvider, Origin


def sign_origin(account: str, secret: bytes) -> bytes:
    """Keyed digest binding *account* to *secret*."""
    return hashlib.blake2b(account.encode(), key=secret, digest_size=32).digest()


class SignedOriginAuth(AuthProvider):
    """
    Resolves ``Origin.signed(account)`` to ``account``.

    Unsigned origins and malformed account ids are rejected. Accounts with
    an entry in *secrets* must also carry a matching signature.
    """

    def __init__(self, secrets: Optional[Dict[str, bytes]] = None):
        self._secrets: Dict[str, bytes] = dict(secrets or {})

    def add_secret(self, account: str, secret: bytes):
        self._secrets[account] = secret

    def verify(self, origin: Any) -> str:
        if not isinstance(origin, Origin) or not origin.is_signed:
            raise UnauthorizedError("Origin is not signed")

        account = origin.account
        if not isinstance(account, str) or not VALID_ACCOUNT_PATTERN.match(account):
            raise UnauthorizedError(f"Malformed account id: {account!r}")

        secret = self._secrets.get(account)
        if secret is not None:
            expected = sign_origin(account, secret)
            if origin.signature is None or not hmac.compare_digest(expected, origin.signature):
                raise UnauthorizedError(f"Bad signature for {account}")

        return account
