"""
Token issuance and scope-based authorization for a Flask REST server.

High-level flow
---------------
Authentication (``POST /authenticate``):

1. `Authenticator` parses ``{"name": ..., "secret": ...}``.
2. The `UserStore` is searched; secrets compare in constant time.
3. `JWTCodec.encode` signs ``{"name": ..., "iat": ...}``.
4. The client receives ``{"access_token", "method", "expires_in"}``.

Authorization (every other request):

1. `RestSecurity.gate` runs before the view.
2. The configured extractor pulls the token from the header or form body.
3. `JWTCodec.decode` verifies the signature.
4. `ClaimValidator` checks ``name`` and ``iat`` and the expiry.
5. `ScopeMatcher` matches ``"<VERB> <PATH>"`` against the user's patterns.
6. Failures become ``401`` with a ``WWW-Authenticate`` header.

Example usage
-------------

.. code-block:: python

    from rest_security import SecurityContext, create_app, load_settings

    settings = load_settings("rest-server.json")
    with SecurityContext.from_settings(settings) as context:
        app = create_app(context)
        app.run(port=settings.http.port, ssl_context=context.tls.ssl_context())
"""

__version__ = "1.0.0"

# Errors
from .errors import (
    AuthError,
    ConfigError,
    ExpiredToken,
    InsufficientScope,
    InternalError,
    InvalidCredentials,
    InvalidRequest,
    InvalidToken,
    UnknownPrincipal,
)

# Protocols
from .protocols import Claims, Clock, Extractor, TokenCodec

# Components
from .authenticator import Authenticator
from .authorizer import ScopeAuthorizer
from .claims import ClaimValidator
from .codec import JWTCodec, supported_algorithms
from .extractors import BodyExtractor, HeaderExtractor, TokenMethod, extractor_for
from .scopes import ScopeMatcher, required_scope
from .tls import TLSMaterial
from .users import Principal, UserStore

# Settings and wiring
from .context import SecurityContext
from .settings import Settings, load_settings

# Flask
from .app import create_app
from .flask_extension import RestSecurity

__all__ = [
    "__version__",
    # Errors
    "AuthError",
    "ConfigError",
    "ExpiredToken",
    "InsufficientScope",
    "InternalError",
    "InvalidCredentials",
    "InvalidRequest",
    "InvalidToken",
    "UnknownPrincipal",
    # Protocols
    "Claims",
    "Clock",
    "Extractor",
    "TokenCodec",
    # Components
    "Authenticator",
    "ScopeAuthorizer",
    "ClaimValidator",
    "JWTCodec",
    "supported_algorithms",
    "BodyExtractor",
    "HeaderExtractor",
    "TokenMethod",
    "extractor_for",
    "ScopeMatcher",
    "required_scope",
    "TLSMaterial",
    "Principal",
    "UserStore",
    # Settings and wiring
    "SecurityContext",
    "Settings",
    "load_settings",
    # Flask
    "create_app",
    "RestSecurity",
]
