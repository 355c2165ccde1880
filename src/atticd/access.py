"""HS256 signing key handling.

The key is deliberately opaque: it can sign and verify, and nothing else.
It never renders its bytes in ``repr`` and compares in constant time.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import os
from typing import Callable, Optional

from .errors import InvalidSecretEncoding, MissingSecret

logger = logging.getLogger(__name__)

#: Environment variable storing the Base64-encoded HS256 JWT secret.
ENV_TOKEN_HS256_SECRET_BASE64 = "ATTIC_SERVER_TOKEN_HS256_SECRET_BASE64"

EnvLookup = Callable[[str], Optional[str]]


class HS256Key:
    """Symmetric HMAC-SHA256 key used to sign and verify tokens."""

    __slots__ = ("_secret",)

    def __init__(self, secret: bytes):
        if not secret:
            raise ValueError("HS256 key must not be empty")
        self._secret = bytes(secret)

    def sign(self, message: bytes) -> bytes:
        """Return the HMAC-SHA256 of ``message``."""
        return hmac.new(self._secret, message, hashlib.sha256).digest()

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Check ``signature`` against ``message`` in constant time."""
        return hmac.compare_digest(self.sign(message), signature)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HS256Key):
            return NotImplemented
        return hmac.compare_digest(self._secret, other._secret)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "HS256Key(<redacted>)"


def decode_token_hs256_secret_base64(s: str) -> HS256Key:
    """Decode a Base64-encoded HS256 secret into a key.

    Raises:
        InvalidSecretEncoding: If ``s`` is not valid Base64 or decodes to
            an empty key.
    """
    try:
        secret = base64.b64decode(s.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidSecretEncoding(f"HS256 secret is not valid Base64: {exc}") from exc

    if not secret:
        raise InvalidSecretEncoding("HS256 secret decodes to an empty key")

    return HS256Key(secret)


def encode_token_hs256_secret_base64(key: HS256Key) -> str:
    """Encode a key back into the Base64 form accepted by the config."""
    return base64.b64encode(key._secret).decode("ascii")


def resolve_secret(
    inline_base64: Optional[str] = None,
    env: EnvLookup = os.environ.get,
) -> HS256Key:
    """Resolve the HS256 secret from the config body or the environment.

    Args:
        inline_base64: Value of ``token-hs256-secret-base64`` if the config
            supplied it.
        env: Environment lookup, ``os.environ.get`` by default.

    Raises:
        InvalidSecretEncoding: If the chosen value is not valid Base64.
        MissingSecret: If neither source supplies a secret.
    """
    if inline_base64 is not None:
        return decode_token_hs256_secret_base64(inline_base64)

    from_env = env(ENV_TOKEN_HS256_SECRET_BASE64)
    if from_env is None:
        raise MissingSecret(
            "The HS256 secret must be specified in either token-hs256-secret-base64 "
            f"or the {ENV_TOKEN_HS256_SECRET_BASE64} environment variable."
        )

    logger.debug("Using HS256 secret from %s", ENV_TOKEN_HS256_SECRET_BASE64)
    return decode_token_hs256_secret_base64(from_env)
