"""Compact JWS token codec built on PyJWT.

This module provides the component that turns claims into signed tokens and
verifies submitted tokens back into claims:
- Resolves the configured algorithm against PyJWT's registry
- Prepares signing and verification keys (HMAC secret or PEM key pair)
- Maps PyJWT exceptions to domain-specific error types

Claim semantics (expiry, user names) are checked in ``rest_security.claims``,
not here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

import jwt
from cryptography.hazmat.primitives import serialization
from jwt.algorithms import HMACAlgorithm, get_default_algorithms

from .errors import ConfigError, InternalError, InvalidToken

if TYPE_CHECKING:
    from .protocols import Claims

_HEADERS: Final[dict[str, str]] = {"typ": "JWT"}

# Claim checks belong to ClaimValidator; PyJWT must only verify the signature.
_DECODE_OPTIONS: Final[dict[str, bool]] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


def supported_algorithms() -> frozenset[str]:
    """Names of the signing algorithms available in this PyJWT installation."""
    return frozenset(name for name in get_default_algorithms() if name != "none")


class JWTCodec:
    """Encode claims to, and verify claims from, compact JWS tokens.

    Architecture:
        1. Resolve algorithm name to a PyJWT algorithm (construction time)
        2. Prepare signing and verification keys (construction time)
        3. ``encode``: jwt.encode with ``typ=JWT`` header
        4. ``decode``: jwt.decode restricted to the single configured algorithm

    Thread Safety:
        Instances are immutable after construction and safe to share between
        request threads.

    Example:
        ```python
        codec = JWTCodec("HS256", "a-long-shared-signing-secret-value")
        token = codec.encode({"name": "admin", "iat": 1700000000})
        codec.decode(token)  # {"name": "admin", "iat": 1700000000}
        ```

    Attributes:
        algorithm: The configured ``alg`` header value.
    """

    def __init__(self, algorithm: str, key: str | bytes) -> None:
        """Initialize the codec.

        Args:
            algorithm: PyJWT algorithm name, e.g. "HS256", "HS512", "RS256".
            key: For HMAC algorithms, the shared secret. For asymmetric ones,
                a PEM private key (sign and verify) or a PEM public key
                (verify only).

        Raises:
            ConfigError: If the algorithm is unknown, is "none", or the key
                cannot be used with it.
        """
        algorithms = get_default_algorithms()
        if algorithm == "none" or algorithm not in algorithms:
            raise ConfigError(f"Unsupported JWT algorithm: {algorithm!r}")
        if not key:
            raise ConfigError("JWT decode key must not be empty")

        self.algorithm = algorithm
        key_bytes = key.encode("utf-8") if isinstance(key, str) else bytes(key)

        if isinstance(algorithms[algorithm], HMACAlgorithm):
            self._signing_key: Any = key_bytes
            self._verification_key: Any = key_bytes
        else:
            self._signing_key, self._verification_key = _load_key_pair(key_bytes)

    def encode(self, claims: Claims) -> str:
        """Sign ``claims`` into a ``header.payload.signature`` token.

        Raises:
            InternalError: If this codec has no signing key, or the signing
                primitive fails.
        """
        if self._signing_key is None:
            raise InternalError("Codec was configured with a public key and cannot sign")
        try:
            return jwt.encode(
                dict(claims),
                self._signing_key,
                algorithm=self.algorithm,
                headers=_HEADERS,
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise InternalError(f"Token signing failed: {e}") from e

    def decode(self, token: str) -> dict[str, Any]:
        """Verify ``token`` and return its payload.

        Signature comparison is constant time (delegated to PyJWT and
        cryptography).

        Raises:
            InvalidToken: If the token is malformed, was signed with another
                algorithm or key, or its payload is not a JSON object.
            InternalError: If the verification key itself is unusable.
        """
        try:
            return jwt.decode(
                token,
                self._verification_key,
                algorithms=[self.algorithm],
                options=_DECODE_OPTIONS,
            )
        except jwt.InvalidTokenError as e:
            # Malformed segments, bad signature, alg mismatch, bad payload
            raise InvalidToken(f"Token validation failed: {e}") from e
        except jwt.PyJWTError as e:
            raise InternalError(f"Token verification key unusable: {e}") from e


def _load_key_pair(key: bytes) -> tuple[Any, Any]:
    """Return (signing_key, verification_key) from PEM material.

    A private key yields both halves; a public key yields a verify-only pair.
    """
    try:
        private_key = serialization.load_pem_private_key(key, password=None)
    except (ValueError, TypeError):
        pass
    else:
        return private_key, private_key.public_key()

    try:
        public_key = serialization.load_pem_public_key(key)
    except (ValueError, TypeError) as e:
        raise ConfigError("JWT decode key is not a usable PEM key") from e
    return None, public_key
