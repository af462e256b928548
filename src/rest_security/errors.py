"""Authentication and authorization errors.

This module defines the exception hierarchy for the access-control core.
Every request-time failure inherits from AuthError so the Flask layer can
translate all of them in a single ``except`` clause.

Wire mapping
------------
- InvalidRequest      -> 401, ``invalid_request``
- InvalidToken        -> 401, ``invalid_token``
- ExpiredToken        -> 401, ``invalid_token`` (same header as InvalidToken)
- UnknownPrincipal    -> 401, ``invalid_scope``
- InsufficientScope   -> 401, ``invalid_scope``
- InvalidCredentials  -> 400, ``invalid_client``
- InternalError       -> 500

Security Note:
    Several kinds intentionally collapse into the same wire error. Clients
    cannot tell an expired token from a forged one, and cannot enumerate users
    through authorization failures. The precise reason is logged server-side.
"""

from __future__ import annotations

from typing import ClassVar


class ConfigError(ValueError):
    """Raised while loading settings, users or security material.

    Only raised at startup, never while serving requests.
    """


class AuthError(Exception):
    """Base exception for all authentication and authorization failures.

    Attributes:
        status_code: HTTP status the failure is surfaced as.
        error: OAuth2-style error code placed on the wire.
        description: Human readable ``error_description`` for the wire.
    """

    status_code: ClassVar[int] = 401
    error: ClassVar[str] = "invalid_request"
    description: ClassVar[str] = "The request is invalid"

    def www_authenticate(self) -> str:
        """Render the ``WWW-Authenticate`` header value for this failure."""
        return f'error="{self.error}",error_description="{self.description}"'


class InvalidRequest(AuthError):  # noqa: N818
    """Raised when no access token could be found in the request.

    This occurs when:
    - The Authorization header is missing
    - The Authorization header does not start with ``"Bearer "``
    - The body is not form-urlencoded or lacks the ``access_token`` field
    """

    error = "invalid_request"
    description = "The access token is missing"


class InvalidToken(AuthError):  # noqa: N818
    """Raised when a token is present but cannot be trusted.

    This occurs when:
    - Token is malformed (not three base64url segments)
    - Signature verification fails (wrong key or tampered token)
    - Algorithm (alg) is not the configured one
    - Payload is not a JSON object
    - ``name`` or ``iat`` claims are missing or have the wrong type
    """

    error = "invalid_token"
    description = "The access token is invalid"


class ExpiredToken(InvalidToken):  # noqa: N818
    """Raised when ``now >= iat + expiration_time``.

    Note:
        Subclasses InvalidToken and shares its wire header.
    """


class UnknownPrincipal(AuthError):  # noqa: N818
    """Raised when a verified token names a user that is not configured."""

    error = "invalid_scope"
    description = "The scope is invalid"


class InsufficientScope(AuthError):  # noqa: N818
    """Raised when none of the user's scope patterns admit the request."""

    error = "invalid_scope"
    description = "The scope is invalid"


class InvalidCredentials(AuthError):  # noqa: N818
    """Raised when the name/secret pair does not match any configured user.

    Unknown users and wrong secrets raise the same error so the
    authentication endpoint does not leak which names exist.
    """

    status_code = 400
    error = "invalid_client"
    description = "The client credentials are invalid"


class InternalError(AuthError):  # noqa: N818
    """Raised on misconfiguration or a failing signing primitive.

    This is the only AuthError that results in a 5xx response.
    """

    status_code = 500
    error = "server_error"
    description = "Internal server error"
