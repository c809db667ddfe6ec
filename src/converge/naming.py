"""Translation between caller-facing short names and scoped wire names.

Compute objects are addressed by multipart names rooted under the caller's
account, e.g. ``/Compute-acme/jdoe/web-app``. Callers only ever see the
short form (``web-app``). Qualification is applied to every identifier on
the way out and reversed on every identifier on the way in.

Which fields of which payloads hold identifiers is enumerated per resource
kind (see ``converge.resources``); this module only provides the string
transforms.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_PUBLIC_ROOTS: tuple[str, ...] = ("/oracle/",)


@dataclass(frozen=True)
class Scope:
    """Account namespace under which a caller's identifiers are rooted.

    Names under one of ``public_roots`` (for example Oracle-provided machine
    images) are globally qualified already and are never rewritten.
    """

    prefix: str
    public_roots: tuple[str, ...] = DEFAULT_PUBLIC_ROOTS

    def __post_init__(self) -> None:
        if not self.prefix.startswith("/"):
            raise ValueError(f"Scope prefix must start with '/': {self.prefix!r}")
        if self.prefix.endswith("/") or len(self.prefix) < 2:
            raise ValueError(f"Scope prefix must not end with '/': {self.prefix!r}")

    @classmethod
    def for_account(cls, identity_domain: str, user: str) -> Scope:
        """Build the standard ``/Compute-<identity_domain>/<user>`` scope."""
        return cls(prefix=f"/Compute-{identity_domain}/{user}")

    @property
    def root(self) -> str:
        """Prefix including the trailing separator."""
        return self.prefix + "/"

    def is_qualified(self, name: str) -> bool:
        return name.startswith(self.root) or any(
            name.startswith(public) for public in self.public_roots
        )


def qualify(scope: Scope, name: str | None) -> str | None:
    """Return ``name`` rooted under ``scope``.

    Idempotent: an already-qualified name (or a public one) is returned
    unchanged. Empty names are passed through so optional fields stay empty.
    """
    if not name:
        return name
    if scope.is_qualified(name):
        return name
    return scope.root + name.lstrip("/")


def unqualify(scope: Scope, name: str | None) -> str | None:
    """Strip the scope prefix from ``name`` if present. Never raises."""
    if not name:
        return name
    if name.startswith(scope.root):
        return name[len(scope.root) :]
    return name


def qualify_all(scope: Scope, names: Sequence[str] | None) -> list[str] | None:
    if names is None:
        return None
    return [qualify(scope, name) for name in names]


def unqualify_all(scope: Scope, names: Sequence[str] | None) -> list[str] | None:
    if names is None:
        return None
    return [unqualify(scope, name) for name in names]


def qualify_prefixed(scope: Scope, value: str, marker: str) -> str:
    """Qualify an identifier embedded after ``marker``.

    ``ipreservation:web-ip`` becomes ``ipreservation:/Compute-acme/jdoe/web-ip``.
    Values without the marker are returned unchanged.
    """
    if not value.startswith(marker):
        return value
    return marker + qualify(scope, value[len(marker) :])


def unqualify_prefixed(scope: Scope, value: str, marker: str) -> str:
    """Inverse of :func:`qualify_prefixed`."""
    if not value.startswith(marker):
        return value
    return marker + unqualify(scope, value[len(marker) :])


class NameTranslator:
    """Applies either qualification or unqualification under one scope.

    Resource kinds enumerate their identifier fields once, in a single
    translate function, and run it with a qualifying translator on input and
    an unqualifying one on output, so the two directions cannot drift apart.
    """

    def __init__(self, scope: Scope, *, qualifying: bool) -> None:
        self.scope = scope
        self.qualifying = qualifying

    @classmethod
    def qualifier(cls, scope: Scope) -> NameTranslator:
        return cls(scope, qualifying=True)

    @classmethod
    def unqualifier(cls, scope: Scope) -> NameTranslator:
        return cls(scope, qualifying=False)

    def name(self, value: str | None) -> str | None:
        if self.qualifying:
            return qualify(self.scope, value)
        return unqualify(self.scope, value)

    def names(self, values: Sequence[str] | None) -> list[str] | None:
        if self.qualifying:
            return qualify_all(self.scope, values)
        return unqualify_all(self.scope, values)

    def prefixed(self, value: str, marker: str) -> str:
        if self.qualifying:
            return qualify_prefixed(self.scope, value, marker)
        return unqualify_prefixed(self.scope, value, marker)
