"""Validation of decoded token claims."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from .errors import ExpiredToken, InvalidToken

if TYPE_CHECKING:
    from .protocols import Claims, Clock

log = structlog.get_logger(__name__)


class ClaimValidator:
    """Checks that verified claims are well-formed and not expired.

    A token is expired when ``now >= iat + expiration_time``. Clock skew is
    not tolerated; widen ``expiration_time`` if clients need slack.

    Args:
        expiration_time: Token lifetime in seconds.
        clock: Returns the current Unix time. Defaults to ``time.time``.
    """

    def __init__(self, expiration_time: int, clock: Clock = time.time) -> None:
        self._expiration_time = expiration_time
        self._clock = clock

    def validate(self, claims: Claims) -> str:
        """Validate ``claims`` and return the user name they carry.

        Raises:
            InvalidToken: ``name`` is missing, not a string or empty; or
                ``iat`` is missing or not an integer.
            ExpiredToken: The token's lifetime has elapsed.
        """
        name = claims.get("name")
        if not isinstance(name, str) or not name:
            log.debug("name in token must be a non-empty string")
            raise InvalidToken("Token 'name' claim missing or empty")

        issued_at = claims.get("iat")
        # bool is an int subclass but never a timestamp
        if not isinstance(issued_at, int) or isinstance(issued_at, bool):
            log.debug("token issuing time is unspecified", user=name)
            raise InvalidToken("Token 'iat' claim missing or not an integer")

        if self._clock() >= issued_at + self._expiration_time:
            log.debug("user submitted expired token", user=name)
            raise ExpiredToken("Token has expired")

        return name
