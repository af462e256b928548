from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask, jsonify

from . import __version__
from .flask_extension import RestSecurity

if TYPE_CHECKING:
    from .context import SecurityContext


def create_app(context: SecurityContext) -> Flask:
    """
    Create the REST server application around a security context.

    Every route except ``POST /authenticate`` is gated by the scope
    authorizer.

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)
    RestSecurity(context).init_app(app)

    @app.get("/version")
    def version():
        """Server version as plain text."""
        return __version__, 200, {"Content-Type": "text/plain"}

    @app.errorhandler(500)
    def internal_error(error):
        """Handle internal server errors."""
        return jsonify({"error": "server_error"}), 500

    return app
