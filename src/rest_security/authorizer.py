"""Per-request authorization gate.

Pipeline for every protected request:

1. Empty user store -> authorization disabled, request continues
2. Build the required scope ``"<VERB> <PATH>"``
3. Extract the token (InvalidRequest)
4. Decode and verify the token (InvalidToken)
5. Validate claims (InvalidToken / ExpiredToken)
6. Look up the principal named in the token (UnknownPrincipal)
7. Match the principal's scope patterns (InsufficientScope)

Every step fails closed by raising; the Flask layer turns the exception into
an HTTP response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from .errors import InsufficientScope, InternalError, InvalidToken, UnknownPrincipal
from .scopes import ScopeMatcher, required_scope

if TYPE_CHECKING:
    from .claims import ClaimValidator
    from .protocols import Extractor, TokenCodec
    from .users import Principal, UserStore

log = structlog.get_logger(__name__)


class ScopeAuthorizer:
    """Authorizes requests against per-user scope patterns.

    Thread Safety:
        Holds only read-only collaborators; one instance serves all request
        threads.

    Example:
        ```python
        authorizer = ScopeAuthorizer(users, codec, HeaderExtractor(), ClaimValidator(3600))

        # Inside a Flask request context:
        principal = authorizer.authorize(request.method, request.path)
        ```
    """

    def __init__(
        self,
        users: UserStore,
        codec: TokenCodec | None,
        extractor: Extractor,
        validator: ClaimValidator,
        matcher: ScopeMatcher | None = None,
    ) -> None:
        self._users = users
        self._codec = codec
        self._extractor = extractor
        self._validator = validator
        self._matcher = matcher or ScopeMatcher()

    @property
    def enabled(self) -> bool:
        """Authorization is enforced only when at least one user is configured."""
        return len(self._users) > 0

    @property
    def extractor(self) -> Extractor:
        return self._extractor

    def authorize(self, verb: str, path: str) -> Principal | None:
        """Authorize the current request.

        Args:
            verb: HTTP method, e.g. "GET".
            path: Request path, e.g. "/endpoints".

        Returns:
            The authorized principal, or None when authorization is disabled.

        Raises:
            InvalidRequest: No token in the request.
            InvalidToken: Token does not verify or its claims are malformed.
            ExpiredToken: Token lifetime has elapsed.
            UnknownPrincipal: Token names a user that is not configured.
            InsufficientScope: User's scope does not admit the request.
            InternalError: Misconfiguration.
        """
        if not self.enabled:
            return None
        if self._codec is None:
            raise InternalError("No token decode key configured")

        required = required_scope(verb, path)

        token = self._extractor.extract()

        try:
            claims = self._codec.decode(token)
        except InvalidToken:
            log.debug("invalid or corrupt token given", scope=required)
            raise

        name = self._validator.validate(claims)

        principal = self._users.get(name)
        if principal is None:
            log.debug("user not found in configured users list", user=name)
            raise UnknownPrincipal(f"User {name!r} is not configured")

        try:
            self._matcher.check(principal, required)
        except InsufficientScope:
            log.debug("user does not have scope", user=name, scope=required)
            raise

        return principal
