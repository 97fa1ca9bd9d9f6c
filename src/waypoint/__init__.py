"""Callback router: ordered path patterns, positional params, redirects and mounts."""

__version__ = "0.1.0"

from waypoint.app import Waypoint
from waypoint.config import RouterConfig
from waypoint.dispatch import Dispatcher, DispatchResult, RedirectOutcome
from waypoint.request import Request
from waypoint.response import JSONResponse, RedirectResponse, Response
from waypoint.routing import Redirect, Route, RouteMatch, Router

__all__ = [
    "DispatchResult",
    "Dispatcher",
    "JSONResponse",
    "RedirectOutcome",
    "RedirectResponse",
    "Request",
    "Response",
    "Route",
    "RouteMatch",
    "Router",
    "RouterConfig",
    "Waypoint",
]
