"""In-memory directory of credentialed principals.

The store is populated once at startup from configuration and is read-only
while the server is running. Lookups are linear; deployments configure tens
of users at most.

Security Notes
--------------
Secrets are kept in ``bytearray`` buffers rather than ``str`` so that they can
be overwritten with zero bytes when the store is destroyed or a principal is
replaced. Secret comparison is constant time.
"""

from __future__ import annotations

import hmac
import re
from collections.abc import Iterable, Iterator, Sequence

import structlog

from .errors import ConfigError
from .scopes import compile_pattern

log = structlog.get_logger(__name__)


class Principal:
    """An identity that may obtain tokens.

    Attributes:
        name: Unique, non-empty user name.
        scope_patterns: Ordered regex strings admitting ``"<VERB> <PATH>"``.
    """

    __slots__ = ("_name", "_secret", "_patterns", "_compiled")

    def __init__(self, name: str, secret: str, scope_patterns: Sequence[str] = ()) -> None:
        """Create a principal.

        Args:
            name: Non-empty user name.
            secret: Non-empty shared secret, compared verbatim.
            scope_patterns: Regular expressions; empty means no access.

        Raises:
            ValueError: If name or secret is empty or not a string.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Principal name must be a non-empty string")
        if not isinstance(secret, str) or not secret:
            raise ValueError(f"Principal {name!r} must have a non-empty secret")

        self._name = name
        self._secret = bytearray(secret.encode("utf-8", "surrogatepass"))
        self._patterns: tuple[str, ...] = tuple(scope_patterns)
        self._compiled: tuple[re.Pattern[str] | None, ...] = tuple(
            compile_pattern(p) for p in self._patterns
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def scope_patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def compiled_patterns(self) -> tuple[re.Pattern[str] | None, ...]:
        """Compiled form of scope_patterns; None marks a pattern that failed to compile."""
        return self._compiled

    @property
    def secret_buffer(self) -> bytearray:
        """The live buffer holding the secret. Zeroized by wipe()."""
        return self._secret

    def check_secret(self, candidate: str) -> bool:
        """Compare ``candidate`` with the stored secret in constant time.

        Lone surrogates (valid in JSON ``\\uXXXX`` escapes) are encoded as-is
        and simply fail to match.
        """
        encoded = candidate.encode("utf-8", "surrogatepass")
        return hmac.compare_digest(bytes(self._secret), encoded)

    def wipe(self) -> None:
        """Overwrite the secret buffer with zero bytes."""
        for i in range(len(self._secret)):
            self._secret[i] = 0

    def __repr__(self) -> str:
        return f"Principal(name={self._name!r}, scope_patterns={list(self._patterns)!r})"


class UserStore:
    """Append-only collection of principals with unique names.

    Example:
        ```python
        store = UserStore()
        store.add(Principal("admin", "s3cret", ["^GET /endpoints$"]))
        store.get("admin")      # -> Principal
        store.get("nobody")     # -> None
        store.destroy()         # zeroizes every secret
        ```
    """

    def __init__(self, principals: Iterable[Principal] = ()) -> None:
        self._principals: list[Principal] = []
        for principal in principals:
            self.add(principal)

    def add(self, principal: Principal) -> None:
        """Add a principal.

        Raises:
            ConfigError: If a principal with the same name already exists.
        """
        if self.get(principal.name) is not None:
            raise ConfigError(f'Found duplicate "{principal.name}" user name')
        self._principals.append(principal)

    def get(self, name: str) -> Principal | None:
        """Return the principal called ``name``, or None."""
        for principal in self._principals:
            if principal.name == name:
                return principal
        return None

    def replace(self, principal: Principal) -> None:
        """Swap the same-named principal for ``principal`` and wipe the old one.

        Raises:
            KeyError: If no principal with that name exists.
        """
        for index, existing in enumerate(self._principals):
            if existing.name == principal.name:
                existing.wipe()
                self._principals[index] = principal
                return
        raise KeyError(principal.name)

    def destroy(self) -> None:
        """Zeroize every secret and empty the store."""
        for principal in self._principals:
            principal.wipe()
        count = len(self._principals)
        self._principals.clear()
        log.debug("user store destroyed", users=count)

    def __len__(self) -> int:
        return len(self._principals)

    def __iter__(self) -> Iterator[Principal]:
        return iter(self._principals)
