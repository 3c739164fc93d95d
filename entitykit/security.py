"""
entitykit security - Form submission tokens.

Simulated form submissions carry two tokens:

- a *trusted fields token*: a signed manifest of the form field paths the
  server-side property mapper may accept (``order[number]``, ...)
- a *CSRF token* for the test session

:class:`TokenService` is the collaborator interface; :class:`SignedTokenService`
signs the manifest with HMAC (``cryptography``) using the same
``signature.value`` layout as signed cookies.
"""

from __future__ import annotations

import json
import logging
import secrets
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Iterable, List, Optional, Protocol, Union, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from .config import ConfigError
from .faults import InvalidTokenError

logger = logging.getLogger("entitykit.security")


@runtime_checkable
class TokenService(Protocol):
    def generate_trusted_fields_token(self, field_paths: Iterable[str]) -> str: ...

    def get_csrf_token(self) -> str: ...


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    return urlsafe_b64decode(data + "=" * (-len(data) % 4))


class SignedTokenService:
    """
    HMAC-signed trusted-fields tokens plus a per-instance CSRF token.

    Usage::

        tokens = SignedTokenService("secret")
        token = tokens.generate_trusted_fields_token(["order[number]"])
        tokens.read_trusted_fields_token(token)  # ["order[number]"]
    """

    def __init__(self, secret_key: Union[str, bytes, None] = None, algorithm: str = "sha256"):
        if secret_key is None:
            secret_key = secrets.token_bytes(32)
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        self.secret_key = secret_key

        hash_cls = getattr(hashes, algorithm.upper(), None)
        if hash_cls is None:
            raise ConfigError(f"Unsupported token algorithm '{algorithm}'", algorithm=algorithm)
        self.algorithm = algorithm
        self._hash_cls = hash_cls
        self._csrf_token: Optional[str] = None

    # ------------------------------------------------------------------
    # Trusted fields
    # ------------------------------------------------------------------

    def generate_trusted_fields_token(self, field_paths: Iterable[str]) -> str:
        """Sign the ordered, de-duplicated list of *field_paths*."""
        paths = list(dict.fromkeys(field_paths))
        value = json.dumps(paths, separators=(",", ":")).encode("utf-8")
        logger.debug("Signed trusted fields: %s", paths)
        return f"{_b64encode(self._sign(value))}.{_b64encode(value)}"

    def read_trusted_fields_token(self, token: str) -> List[str]:
        """
        Verify *token* and return its field paths.

        Raises:
            InvalidTokenError: malformed token or signature mismatch.
        """
        try:
            sig_b64, val_b64 = token.split(".", 1)
            signature = _b64decode(sig_b64)
            value = _b64decode(val_b64)
        except (ValueError, AttributeError):
            raise InvalidTokenError("malformed trusted fields token") from None

        verifier = hmac.HMAC(self.secret_key, self._hash_cls())
        verifier.update(value)
        try:
            verifier.verify(signature)
        except InvalidSignature:
            raise InvalidTokenError("signature mismatch") from None

        paths = json.loads(value)
        if not isinstance(paths, list):
            raise InvalidTokenError("payload is not a list of field paths")
        return paths

    # ------------------------------------------------------------------
    # CSRF
    # ------------------------------------------------------------------

    def get_csrf_token(self) -> str:
        if self._csrf_token is None:
            self._csrf_token = secrets.token_urlsafe(32)
        return self._csrf_token

    def rotate_csrf_token(self) -> str:
        self._csrf_token = None
        return self.get_csrf_token()

    def _sign(self, value: bytes) -> bytes:
        signer = hmac.HMAC(self.secret_key, self._hash_cls())
        signer.update(value)
        return signer.finalize()


__all__ = ["TokenService", "SignedTokenService"]
