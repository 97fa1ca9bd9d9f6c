"""Effective HTTP method resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Mapping

METHOD_OVERRIDE_HEADER = "x-http-method-override"
OVERRIDABLE_METHODS = frozenset({"PUT", "DELETE", "PATCH"})


class ResolvedMethod(NamedTuple):
    method: str
    suppress_body: bool = False


def resolve_method(raw_method: str, headers: Mapping[str, str]) -> ResolvedMethod:
    """Work out which method's routes a request should be matched against.

    ``HEAD`` is served by the ``GET`` routes with the body suppressed.  A
    ``POST`` carrying ``X-HTTP-Method-Override: PUT|DELETE|PATCH`` is
    dispatched as that method.  *headers* must have lowercase keys.
    """
    method = raw_method.upper()
    if method == "HEAD":
        return ResolvedMethod("GET", suppress_body=True)
    if method == "POST":
        override = headers.get(METHOD_OVERRIDE_HEADER)
        if override in OVERRIDABLE_METHODS:
            return ResolvedMethod(override)
    return ResolvedMethod(method)
