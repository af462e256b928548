"""Flask extension for token issuance and request authorization.

This module is the integration point between the access-control core and a
Flask application. Unlike a per-view decorator, the gate runs before *every*
request, so no endpoint can be exposed by forgetting to protect it.

Key Components:
- RestSecurity: registers ``POST /authenticate`` and the before-request gate

Security Model:
1. ``POST /authenticate`` exchanges ``{name, secret}`` for a token
2. Every other request: extract, verify, validate, scope-match
3. Store the authorized principal in ``flask.g.principal``
4. Convert auth errors to 401 + ``WWW-Authenticate`` (500 for internal errors)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog
from flask import Flask, Response, abort, g, jsonify, make_response, request

from .errors import AuthError, InternalError

if TYPE_CHECKING:
    from .context import SecurityContext

log = structlog.get_logger(__name__)

_EXT_KEY: Final[str] = "rest_security"
"""Flask extensions registry key for RestSecurity."""

AUTHENTICATE_ENDPOINT: Final[str] = "rest_security.authenticate"


class RestSecurity:
    """
    Flask glue for the access-control core.

    Responsibilities:
    - Route ``POST <auth_path>`` to the Authenticator
    - Run the ScopeAuthorizer before every other request
    - Store the authorized principal in ``flask.g.principal``
    - Convert domain errors to HTTP responses

    Pattern:
        security = RestSecurity()
        security.init_app(app, context=context)

    Usage:
        security = RestSecurity(context)
        security.init_app(app)

        @app.get("/endpoints")
        def endpoints(): ...   # gated automatically
    """

    def __init__(
        self,
        context: SecurityContext | None = None,
        *,
        auth_path: str = "/authenticate",
    ) -> None:
        self._context = context
        self._auth_path = auth_path

    @property
    def context(self) -> SecurityContext:
        if self._context is None:
            raise RuntimeError("RestSecurity used before init_app() received a SecurityContext")
        return self._context

    def init_app(self, app: Flask, *, context: SecurityContext | None = None) -> None:
        """Register the authentication route and the authorization gate.

        Args:
            app (Flask): The Flask application instance.
            context (SecurityContext | None, optional): Replaces the context
                given to the constructor. Defaults to None.
        """
        if context is not None:
            self._context = context

        app.add_url_rule(
            self._auth_path,
            endpoint=AUTHENTICATE_ENDPOINT,
            view_func=self.authenticate,
            methods=["POST"],
        )
        app.before_request(self.gate)
        app.extensions[_EXT_KEY] = self

    def authenticate(self) -> tuple[Response, int]:
        """View for the authentication endpoint.

        Error mapping:
        - malformed body      -> 400 ``{"error": "invalid_request"}``
        - bad credentials     -> 400 ``{"error": "invalid_client"}``
        - signing failure     -> 500
        """
        try:
            body, status = self.context.authenticator.authenticate(request.get_data())
        except InternalError as e:
            log.warning("unable to issue access token", reason=str(e))
            abort(500)
        return jsonify(body), status

    def gate(self) -> Response | None:
        """Before-request hook authorizing everything except the auth endpoint.

        Error mapping:
        - ``InvalidRequest``                        -> 401 ``invalid_request``
        - ``InvalidToken`` / ``ExpiredToken``       -> 401 ``invalid_token``
        - ``UnknownPrincipal`` / ``InsufficientScope`` -> 401 ``invalid_scope``
        - ``InternalError``                         -> 500

        Returns:
            None to let the request continue, or the 401 response.
        """
        if request.endpoint == AUTHENTICATE_ENDPOINT:
            return None

        try:
            g.principal = self.context.authorizer.authorize(request.method, request.path)
        except InternalError as e:
            log.error("authorization failed internally", reason=str(e))
            abort(500)
        except AuthError as e:
            return unauthorized(e)
        return None


def unauthorized(error: AuthError) -> Response:
    """Build the 401 response carrying the ``WWW-Authenticate`` header for ``error``."""
    response = make_response("", 401)
    response.headers["WWW-Authenticate"] = error.www_authenticate()
    return response
