"""Scope matching for request authorization.

A user's scope is an ordered list of regular expressions. A request is
admitted when any of them matches the required scope string
``"<VERB> <PATH>"``.

Security Notes
--------------
Patterns are matched with *search* semantics: the match may occur anywhere in
the string, so an unanchored pattern like ``GET`` admits every GET request.
Prefer anchored patterns such as ``^GET /endpoints$`` in configuration.

Matching is fail-closed: a pattern that does not compile never matches, and
a scope string containing a control character (for example a percent-decoded
``%0A`` in the path) matches nothing. Python's ``$`` also matches before a
trailing newline, unlike POSIX ERE.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from .errors import InsufficientScope

if TYPE_CHECKING:
    from .users import Principal

log = structlog.get_logger(__name__)

_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f-\x9f\u2028\u2029]")


def required_scope(verb: str, path: str) -> str:
    """Build the scope string a request must be admitted under."""
    return f"{verb} {path}"


def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a scope pattern, returning None when it is not a valid regex.

    Invalid patterns are reported once, at configuration time, and are then
    treated as non-matching.
    """
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as e:
        log.warning("invalid scope pattern ignored", pattern=pattern, reason=str(e))
        return None


class ScopeMatcher:
    """Decides whether a principal's scope patterns admit a requirement.

    Example:
        >>> matcher = ScopeMatcher()
        >>> matcher.check(principal, required_scope("GET", "/time"))  # no raise
        >>> matcher.permits(principal, "POST /time")
        False
    """

    def permits(self, principal: Principal, required: str) -> bool:
        """Return True if any of the principal's patterns matches ``required``.

        Patterns are tried in order and the first match wins. An empty
        pattern list admits nothing, and so does a ``required`` string that
        contains a line terminator or other control character.
        """
        if _CONTROL_CHARACTERS.search(required):
            log.debug("control character in required scope", scope=required)
            return False
        for pattern in principal.compiled_patterns:
            if pattern is not None and pattern.search(required):
                return True
        return False

    def check(self, principal: Principal, required: str) -> None:
        """Like permits(), but raises instead of returning False.

        Raises:
            InsufficientScope: No pattern admits ``required``.
        """
        if not self.permits(principal, required):
            raise InsufficientScope(f"User {principal.name!r} lacks scope {required!r}")
