"""Explicit container for the load-once, teardown-once security state.

A SecurityContext owns the user store, the token codec and (optionally) the
TLS material, and wires the authenticator and authorizer from them. It is
built before the server starts serving and closed after it has stopped.
Tests build isolated contexts instead of relying on module globals.
"""

from __future__ import annotations

import time
from types import TracebackType
from typing import TYPE_CHECKING

import structlog

from .authenticator import Authenticator
from .authorizer import ScopeAuthorizer
from .claims import ClaimValidator
from .codec import JWTCodec
from .errors import ConfigError
from .extractors import extractor_for
from .tls import TLSMaterial
from .users import Principal, UserStore

if TYPE_CHECKING:
    from .protocols import Clock
    from .settings import JWTSettings, Settings

log = structlog.get_logger(__name__)


def build_user_store(jwt_settings: JWTSettings) -> UserStore:
    """Create principals for every configured user, then drop the plain-text entries.

    Raises:
        ConfigError: On a duplicate name.
    """
    store = UserStore(
        Principal(user.name, user.secret, user.scope) for user in jwt_settings.users
    )
    jwt_settings.users.clear()
    return store


class SecurityContext:
    """Authentication and authorization state for one server instance.

    Attributes:
        jwt: The signing configuration.
        users: Configured principals.
        codec: Token codec.
        authenticator: Handles ``POST /authenticate``.
        authorizer: Gates every other request.
        tls: TLS material, or None for plain HTTP.
    """

    def __init__(
        self,
        jwt_settings: JWTSettings,
        users: UserStore,
        *,
        tls: TLSMaterial | None = None,
        clock: Clock = time.time,
    ) -> None:
        """Wire the components.

        Raises:
            ConfigError: If the algorithm or decode key is unusable while
                users are configured.
        """
        self.jwt = jwt_settings
        self.users = users
        self.tls = tls

        self.codec: JWTCodec | None = None
        if jwt_settings.decode_key:
            self.codec = JWTCodec(jwt_settings.algorithm, jwt_settings.decode_key)
        elif len(users):
            raise ConfigError("http.security.jwt.decode_key is required when users are configured")

        if not len(users):
            log.warning("no users configured, authorization is disabled")

        self.authenticator = Authenticator(
            users,
            self.codec,
            jwt_settings.method,
            jwt_settings.expiration_time,
            clock=clock,
        )
        self.authorizer = ScopeAuthorizer(
            users,
            self.codec,
            extractor_for(jwt_settings.method),
            ClaimValidator(jwt_settings.expiration_time, clock=clock),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        load_tls: bool = True,
        clock: Clock = time.time,
    ) -> SecurityContext:
        """Build a context from loaded settings.

        TLS material is loaded only when both files are configured and
        ``load_tls`` is true.

        Raises:
            ConfigError: On duplicate users, unusable signing configuration or
                unreadable TLS files.
        """
        security = settings.http.security
        users = build_user_store(security.jwt)

        tls = None
        try:
            if load_tls and security.private_key and security.certificate:
                tls = TLSMaterial.load(security.private_key, security.certificate)
            return cls(security.jwt, users, tls=tls, clock=clock)
        except Exception:
            users.destroy()
            if tls is not None:
                tls.unload()
            raise

    def close(self) -> None:
        """Zeroize secrets and TLS material. Call only after serving stops."""
        self.users.destroy()
        if self.tls is not None:
            self.tls.unload()

    def __enter__(self) -> SecurityContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
