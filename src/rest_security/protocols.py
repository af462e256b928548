"""Protocol definitions for the access-control core.

This module defines structural interfaces using Protocol (PEP 544) for:
- Token encoding and verification
- Token extraction

Using protocols allows for duck-typing and easier testing/mocking without
requiring explicit inheritance. Any class that implements the required methods
satisfies the protocol.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

# ============================================================================
# Type Aliases
# ============================================================================

type Claims = Mapping[str, Any]
"""Represents a decoded token payload as an immutable mapping."""

type Clock = Callable[[], float]
"""Returns the current wall clock in Unix seconds."""


# ============================================================================
# Core Protocols
# ============================================================================


class TokenCodec(Protocol):
    """Protocol for signed compact token implementations.

    Implementers sign claims into a ``header.payload.signature`` string and
    verify such strings back into claims. Claim semantics (expiry, names)
    are not the codec's concern.
    """

    def encode(self, claims: Claims) -> str:
        """Sign claims into a compact token.

        Raises:
            InternalError: The signing key or algorithm is unusable.
        """
        ...

    def decode(self, token: str) -> dict[str, Any]:
        """Verify a compact token and return its payload.

        Raises:
            InvalidToken: Token is malformed or its signature does not verify.
        """
        ...


class Extractor(Protocol):
    """Protocol for extracting bearer tokens from HTTP requests.

    Implementers must provide an extract() method that retrieves the raw
    token string from the current Flask request context.

    Implementations:
    - Authorization: Bearer <token> header
    - ``access_token`` field of a form-urlencoded body
    """

    def extract(self) -> str:
        """Extract the raw token string from the Flask request.

        Returns:
            Raw token string.

        Raises:
            InvalidRequest: Token not found or improperly transported.
        """
        ...
