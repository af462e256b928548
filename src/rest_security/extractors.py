"""Token extraction strategies from HTTP requests.

This module provides implementations of the Extractor protocol for retrieving
bearer tokens from different parts of an HTTP request, selected by the
configured transport method.

Implementations:
- HeaderExtractor: ``Authorization: Bearer <token>`` header
- BodyExtractor: ``access_token`` field of a form-urlencoded body

Security Considerations:
- Tokens are never read from URL query parameters (visible in logs/history);
  the ``url`` transport is rejected when settings are loaded
- The ``Bearer `` prefix is matched literally and case-sensitively
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Final

import structlog
from flask import request

from .errors import InternalError, InvalidRequest

if TYPE_CHECKING:
    from .protocols import Extractor

log = structlog.get_logger(__name__)

BEARER_PREFIX: Final[str] = "Bearer "
ACCESS_TOKEN_FIELD: Final[str] = "access_token"
FORM_URLENCODED: Final[str] = "application/x-www-form-urlencoded"


class TokenMethod(Enum):
    """Where clients put the access token."""

    HEADER = "header"
    BODY = "body"


class HeaderExtractor:
    """Extracts the token from the Authorization header.

    Expects requests with header format:
        Authorization: Bearer <token>

    Everything after the seven-character ``"Bearer "`` prefix is the token.
    """

    def extract(self) -> str:
        """Extract the token from the Authorization header.

        Raises:
            InvalidRequest: If the header is missing or not a Bearer header.
        """
        auth_header = request.headers.get("Authorization")

        if auth_header is None:
            log.debug("authorization header not found in request")
            raise InvalidRequest("Missing Authorization header")

        if not auth_header.startswith(BEARER_PREFIX):
            log.debug("authorization type is not bearer")
            raise InvalidRequest("Invalid authorization scheme (expected 'Bearer')")

        return auth_header[len(BEARER_PREFIX) :]


class BodyExtractor:
    """Extracts the token from a form-urlencoded request body.

    Expects a body like ``access_token=<token>`` sent with
    ``Content-Type: application/x-www-form-urlencoded``.
    """

    def extract(self) -> str:
        """Extract the token from the ``access_token`` form field.

        Raises:
            InvalidRequest: If the body is not form-urlencoded or has no
                ``access_token`` field.
        """
        content_type = request.headers.get("Content-Type", "")

        if FORM_URLENCODED not in content_type:
            log.debug("access token parameter not encoded in request body")
            raise InvalidRequest("Request body is not form-urlencoded")

        token = request.form.get(ACCESS_TOKEN_FIELD)
        if token is None:
            log.debug("access token parameter not found in request body")
            raise InvalidRequest(f"Missing form field '{ACCESS_TOKEN_FIELD}'")

        return token


_EXTRACTORS: Final[dict[TokenMethod, type]] = {
    TokenMethod.HEADER: HeaderExtractor,
    TokenMethod.BODY: BodyExtractor,
}


def extractor_for(method: TokenMethod) -> Extractor:
    """Return the extractor for a transport method.

    Raises:
        InternalError: If ``method`` is not a known transport.
    """
    try:
        return _EXTRACTORS[method]()
    except (KeyError, TypeError) as e:
        raise InternalError(f"Invalid token method: {method!r}") from e
