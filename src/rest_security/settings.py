"""Server settings and the JSON configuration file loader.

The configuration file is a JSON object with three sections:

.. code-block:: json

    {
      "coap": {"port": 5555},
      "http": {
        "port": 8888,
        "security": {
          "private_key": "private.key",
          "certificate": "certificate.pem",
          "jwt": {
            "algorithm": "HS512",
            "method": "header",
            "decode_key": "some-very-secret-key",
            "expiration_time": 3600,
            "users": [
              {"name": "admin", "secret": "not-same-as-name", "scope": [".*"]}
            ]
          }
        }
      },
      "logging": {"level": 3}
    }

Unrecognised sections, keys and values are reported as warnings and ignored.
Keys inside ``http.security`` and ``http.security.jwt`` match
case-insensitively. A duplicate user name aborts loading.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import structlog

from .errors import ConfigError
from .extractors import TokenMethod

log = structlog.get_logger(__name__)

DEFAULT_COAP_PORT: Final[int] = 5555
DEFAULT_HTTP_PORT: Final[int] = 8888
DEFAULT_ALGORITHM: Final[str] = "HS512"
DEFAULT_EXPIRATION_TIME: Final[int] = 3600
DEFAULT_LOG_LEVEL: Final[int] = 3


@dataclass(frozen=True, slots=True)
class UserSettings:
    """One entry of ``http.security.jwt.users``."""

    name: str
    secret: str = field(repr=False)
    scope: tuple[str, ...] = ()


@dataclass(slots=True)
class JWTSettings:
    """Signing configuration and configured users."""

    algorithm: str = DEFAULT_ALGORITHM
    method: TokenMethod = TokenMethod.HEADER
    decode_key: str | None = field(default=None, repr=False)
    expiration_time: int = DEFAULT_EXPIRATION_TIME
    users: list[UserSettings] = field(default_factory=list)


@dataclass(slots=True)
class SecuritySettings:
    private_key: str | None = None
    certificate: str | None = None
    jwt: JWTSettings = field(default_factory=JWTSettings)


@dataclass(slots=True)
class HttpSettings:
    port: int = DEFAULT_HTTP_PORT
    security: SecuritySettings = field(default_factory=SecuritySettings)


@dataclass(slots=True)
class CoapSettings:
    port: int = DEFAULT_COAP_PORT


@dataclass(slots=True)
class LoggingSettings:
    """Logging verbosity (0 fatal .. 5 trace) and timestamp options."""

    level: int = DEFAULT_LOG_LEVEL
    timestamp: bool = False
    human_readable_timestamp: bool = False


@dataclass(slots=True)
class Settings:
    """Everything the server reads from its configuration file."""

    coap: CoapSettings = field(default_factory=CoapSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ============================================================================
# Loader
# ============================================================================


def _unrecognised(section: str, key: str) -> None:
    if not section:
        log.warning("unrecognised configuration file section", section=key)
    else:
        log.warning("unrecognised configuration file key", key=f"{section}.{key}")


def _integer(section: str, key: str, value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    log.warning("configuration value must be an integer", key=f"{section}.{key}")
    return None


def _string(section: str, key: str, value: Any) -> str | None:
    if isinstance(value, str):
        return value
    log.warning("configuration value must be a string", key=f"{section}.{key}")
    return None


def _walk(
    section_name: str,
    section: Any,
    handlers: Mapping[str, Callable[[Any], None]],
    *,
    ignore_case: bool = False,
) -> None:
    """Dispatch every key of ``section`` to its handler, reporting the rest."""
    if not isinstance(section, dict):
        log.warning("configuration section must be an object", section=section_name)
        return
    for key, value in section.items():
        lookup = key.lower() if ignore_case else key
        handler = handlers.get(lookup)
        if handler is None:
            _unrecognised(section_name, key)
        else:
            handler(value)


def parse_user(entry: Any, existing: list[UserSettings]) -> UserSettings | None:
    """Validate one user entry.

    Returns None (after a warning) for entries without a usable name or
    secret. A missing or non-array scope becomes an empty scope.

    Raises:
        ConfigError: If the name duplicates one in ``existing``.
    """
    if not isinstance(entry, dict):
        log.warning("user entry must be an object")
        return None

    name = entry.get("name")
    if not isinstance(name, str) or not name:
        log.warning("user configured without name")
        return None

    if any(user.name == name for user in existing):
        raise ConfigError(f'Found duplicate "{name}" user name in config')

    secret = entry.get("secret")
    if not isinstance(secret, str) or not secret:
        log.warning("user configured without valid secret key", user=name)
        return None

    scope = entry.get("scope")
    if not isinstance(scope, list):
        log.warning("user configured without valid scope, setting default scope", user=name)
        scope = []

    patterns = []
    for pattern in scope:
        if isinstance(pattern, str):
            patterns.append(pattern)
        else:
            log.warning("non-string scope pattern ignored", user=name)

    return UserSettings(name=name, secret=secret, scope=tuple(patterns))


def _apply_jwt(section: Any, jwt_settings: JWTSettings) -> None:
    name = "http.security.jwt"

    def algorithm(value: Any) -> None:
        if (text := _string(name, "algorithm", value)) is not None:
            jwt_settings.algorithm = text

    def expiration_time(value: Any) -> None:
        if (number := _integer(name, "expiration_time", value)) is not None:
            jwt_settings.expiration_time = number

    def method(value: Any) -> None:
        try:
            jwt_settings.method = TokenMethod(str(value).lower())
        except ValueError:
            log.warning("unrecognised configuration value", key=f"{name}.method", value=value)

    def decode_key(value: Any) -> None:
        if (text := _string(name, "decode_key", value)) is not None:
            jwt_settings.decode_key = text

    def users(value: Any) -> None:
        if not isinstance(value, list):
            log.warning("configuration value must be an array", key=f"{name}.users")
            return
        for entry in value:
            user = parse_user(entry, jwt_settings.users)
            if user is not None:
                jwt_settings.users.append(user)

    _walk(
        name,
        section,
        {
            "algorithm": algorithm,
            "expiration_time": expiration_time,
            "method": method,
            "decode_key": decode_key,
            "users": users,
        },
        ignore_case=True,
    )


def _apply_security(section: Any, security: SecuritySettings) -> None:
    name = "http.security"

    def private_key(value: Any) -> None:
        security.private_key = _string(name, "private_key", value)

    def certificate(value: Any) -> None:
        security.certificate = _string(name, "certificate", value)

    _walk(
        name,
        section,
        {
            "private_key": private_key,
            "certificate": certificate,
            "jwt": lambda value: _apply_jwt(value, security.jwt),
        },
        ignore_case=True,
    )


def _apply_http(section: Any, http: HttpSettings) -> None:
    def port(value: Any) -> None:
        if (number := _integer("http", "port", value)) is not None:
            http.port = number

    _walk(
        "http",
        section,
        {"port": port, "security": lambda value: _apply_security(value, http.security)},
    )


def _apply_coap(section: Any, coap: CoapSettings) -> None:
    def port(value: Any) -> None:
        if (number := _integer("coap", "port", value)) is not None:
            coap.port = number

    _walk("coap", section, {"port": port})


def _apply_logging(section: Any, logging_settings: LoggingSettings) -> None:
    def level(value: Any) -> None:
        if (number := _integer("logging", "level", value)) is not None:
            logging_settings.level = number

    def flag(attr: str) -> Callable[[Any], None]:
        def apply(value: Any) -> None:
            if isinstance(value, bool):
                setattr(logging_settings, attr, value)
            else:
                log.warning("configuration value must be a boolean", key=f"logging.{attr}")

        return apply

    _walk(
        "logging",
        section,
        {
            "level": level,
            "timestamp": flag("timestamp"),
            "human_readable_timestamp": flag("human_readable_timestamp"),
        },
    )


def apply_config(document: Mapping[str, Any], settings: Settings | None = None) -> Settings:
    """Apply a parsed configuration document on top of ``settings``.

    Raises:
        ConfigError: If a user name is duplicated.
    """
    settings = settings or Settings()
    _walk(
        "",
        document,
        {
            "coap": lambda value: _apply_coap(value, settings.coap),
            "http": lambda value: _apply_http(value, settings.http),
            "logging": lambda value: _apply_logging(value, settings.logging),
        },
    )
    return settings


def load_settings(path: str | os.PathLike[str], settings: Settings | None = None) -> Settings:
    """Read a JSON configuration file into ``settings``.

    Args:
        path: Configuration file.
        settings: Settings to update. A fresh Settings() if omitted.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, is not an
            object, or contains a duplicate user name.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"{path}: {e.strerror}") from e

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}:{e.lineno}:{e.colno} error:{e.msg}") from e

    if not isinstance(document, dict):
        raise ConfigError(f"{path}: configuration must be a JSON object")

    return apply_config(document, settings)
