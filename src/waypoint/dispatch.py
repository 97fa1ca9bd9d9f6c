"""Request dispatch: find the matching route and run it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from waypoint.methods import resolve_method
from waypoint.paths import normalize_path
from waypoint.routing import Redirect

if TYPE_CHECKING:
    from waypoint.request import Request
    from waypoint.routing import RouteMatch, Router

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RedirectOutcome:
    """A redirect the transport must emit: ``Location`` plus status."""

    location: str
    status_code: int


@dataclass(slots=True)
class DispatchResult:
    """What a dispatch did, for the transport to act on.

    ``value`` is the last handler's return value; the router never looks at
    it.  ``suppress_body`` is set for ``HEAD`` requests whether or not a
    route matched.
    """

    method: str
    path: str
    handled: int = 0
    suppress_body: bool = False
    redirect: RedirectOutcome | None = None
    value: Any = None
    not_found: bool = False

    def __bool__(self) -> bool:
        return self.handled > 0


class Dispatcher:
    """Walks a :class:`Router` for one request at a time.

    Parameters
    ----------
    router:
        The route table to read.
    base_path:
        Prefix stripped from request URIs before matching.
    first_match_only:
        When ``False`` every matching entry runs, not just the first.
    """

    __slots__ = ("base_path", "first_match_only", "router")

    def __init__(self, router: Router, base_path: str = "/", *, first_match_only: bool = True) -> None:
        self.router = router
        self.base_path = base_path
        self.first_match_only = first_match_only

    def matches(self, request: Request) -> tuple[DispatchResult, list[RouteMatch]]:
        """Resolve *request* to its match key and matching entries, invoking nothing."""
        method, suppress_body = resolve_method(request.method, request.headers)
        path = normalize_path(request.uri, self.base_path)
        result = DispatchResult(method=method, path=path, suppress_body=suppress_body)

        found: list[RouteMatch] = []
        for route_match in self.router.iter_matches(method, path):
            found.append(route_match)
            if self.first_match_only:
                break
        return result, found

    def dispatch(self, request: Request) -> DispatchResult:
        """Run the matching entry (or entries) for *request*.

        Redirects are recorded on the result; routes have their handler
        called with the extracted params.  Handler exceptions propagate.
        """
        result, found = self.matches(request)
        for route_match in found:
            entry = route_match.route
            if isinstance(entry, Redirect):
                result.redirect = RedirectOutcome(entry.location(route_match.params), entry.status_code)
                logger.debug("%s %s redirects to %s", result.method, result.path, result.redirect.location)
            else:
                logger.debug("%s %s matched %s", result.method, result.path, entry.pattern)
                result.value = entry.handler(*route_match.params)
            result.handled += 1

        if not result.handled:
            logger.debug("No route for %s %s", result.method, result.path)
        return result
