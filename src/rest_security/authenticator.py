"""Credential exchange: ``{name, secret}`` in, signed access token out.

This is the logic behind ``POST /authenticate``. It is framework-agnostic:
it consumes the raw request body and returns a JSON-serializable body and a
status code, leaving response writing to the Flask layer.

Response shapes
---------------
- 200: ``{"access_token": ..., "method": "header"|"body", "expires_in": ...}``
- 400: ``{"error": "invalid_request"}`` for a malformed body
- 400: ``{"error": "invalid_client"}`` for unknown user or wrong secret
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

import structlog

from .errors import InternalError, InvalidCredentials

if TYPE_CHECKING:
    from .extractors import TokenMethod
    from .protocols import Clock, TokenCodec
    from .users import Principal, UserStore

log = structlog.get_logger(__name__)

_BODY_KEYS = frozenset({"name", "secret"})


def parse_credentials(raw_body: bytes | str | None) -> tuple[str, str] | None:
    """Return ``(name, secret)`` from an authentication body, or None if malformed.

    The body must be a JSON object with exactly the keys ``name`` and
    ``secret``, both strings.
    """
    if not raw_body:
        return None
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(body, dict) or body.keys() != _BODY_KEYS:
        return None

    name, secret = body["name"], body["secret"]
    if not isinstance(name, str) or not isinstance(secret, str):
        return None
    return name, secret


class Authenticator:
    """Verifies client credentials and mints access tokens.

    Args:
        users: Configured principals.
        codec: Token codec holding the signing algorithm and key. None when
            no key is configured; issuing a token then raises InternalError.
        method: Transport clients must use for the issued token.
        expiration_time: Token lifetime in seconds, echoed as ``expires_in``.
        clock: Returns the current Unix time. Defaults to ``time.time``.
    """

    def __init__(
        self,
        users: UserStore,
        codec: TokenCodec | None,
        method: TokenMethod,
        expiration_time: int,
        clock: Clock = time.time,
    ) -> None:
        self._users = users
        self._codec = codec
        self._method = method
        self._expiration_time = expiration_time
        self._clock = clock

    def verify_credentials(self, name: str, secret: str) -> Principal:
        """Return the principal for a name/secret pair.

        Raises:
            InvalidCredentials: Unknown user or wrong secret (indistinguishable).
        """
        principal = self._users.get(name)
        if principal is None or not principal.check_secret(secret):
            raise InvalidCredentials(f"User {name!r} failed to authenticate")
        return principal

    def issue_token(self, principal: Principal) -> str:
        """Mint a token with ``name`` and ``iat`` claims for ``principal``.

        Raises:
            InternalError: If signing fails.
        """
        if self._codec is None:
            raise InternalError("No signing key configured")
        claims = {"name": principal.name, "iat": int(self._clock())}
        return self._codec.encode(claims)

    def authenticate(self, raw_body: bytes | str | None) -> tuple[dict[str, Any], int]:
        """Handle one authentication request.

        Args:
            raw_body: Unparsed request body.

        Returns:
            ``(response_body, status_code)``.

        Raises:
            InternalError: If the token cannot be signed.
        """
        log.debug("authentication callback begins")

        credentials = parse_credentials(raw_body)
        if credentials is None:
            log.info("invalid authentication request body")
            return {"error": "invalid_request"}, 400

        name, secret = credentials
        try:
            principal = self.verify_credentials(name, secret)
        except InvalidCredentials as e:
            log.debug("user failed to authenticate", user=name)
            return {"error": e.error}, e.status_code

        token = self.issue_token(principal)
        log.info("access token issued", user=principal.name)

        return {
            "access_token": token,
            "method": self._method.value,
            "expires_in": self._expiration_time,
        }, 200
