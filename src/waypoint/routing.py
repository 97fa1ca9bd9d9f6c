"""Route table with ordered, first-match-wins lookup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

logger = logging.getLogger(__name__)

ANY_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD")

_PARAM_RE = re.compile(r"/\{(\w+)\}")
_ADJACENT_RE = re.compile(r"\{\w+\}\{\w+\}")
_SLASHES_RE = re.compile(r"/{2,}")


def join_prefix(prefix: str, extra: str) -> str:
    """Append a mount segment to *prefix*, reconciling slashes.

    ``join_prefix("", "/admin")`` is ``"/admin"``;
    ``join_prefix("/admin", "users/")`` is ``"/admin/users"``.
    """
    extra = extra.strip("/")
    if not extra:
        return prefix
    return f"{prefix.rstrip('/')}/{extra}"


def unify_pattern(pattern: str, prefix: str = "") -> str:
    """Prefix *pattern* with the mount *prefix* and tidy its slashes.

    The result never contains ``//`` and has no trailing slash unless it is
    the root pattern ``/``.
    """
    unified = f"{prefix}/{pattern.strip('/')}"
    if prefix:
        unified = unified.rstrip("/")
    return _SLASHES_RE.sub("/", unified) or "/"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile ``/users/{id}/posts/{post}`` into an anchored regex.

    Each ``/{name}`` becomes a lazy ``/(.*?)`` capture; a placeholder that
    ends the pattern becomes the optional segment ``(?:/(.*?))?``, so
    ``/users/{id}`` also matches the bare ``/users`` and shadows a ``/users``
    route registered after it.  All other text, stray braces included, is
    matched literally.
    """
    if _ADJACENT_RE.search(pattern):
        msg = f"Adjacent placeholders in route pattern {pattern!r}: separate them with a literal, e.g. /{{a}}/{{b}}"
        raise ValueError(msg)

    parts: list[str] = []
    last_end = 0
    for m in _PARAM_RE.finditer(pattern):
        parts.append(re.escape(pattern[last_end : m.start()]))
        if m.end() == len(pattern):
            parts.append("(?:/(.*?))?")
        else:
            parts.append("/(.*?)")
        last_end = m.end()

    parts.append(re.escape(pattern[last_end:]))
    return re.compile("^" + "".join(parts) + "$")


def extract_params(match: re.Match[str]) -> tuple[str | None, ...]:
    """Pull the positional parameters out of a successful match.

    A slot's value is its captured text, cut off where the next capture
    starts, with slashes trimmed from both ends.  Slots that did not take
    part in the match are ``None``.
    """
    count = match.re.groups
    params: list[str | None] = []
    for index in range(1, count + 1):
        start = match.start(index)
        if start == -1:
            params.append(None)
            continue
        text = match.group(index)
        if index < count:
            next_start = match.start(index + 1)
            if next_start > -1:
                text = text[: next_start - start]
        params.append(text.strip("/"))
    return tuple(params)


def split_methods(methods: str | Iterable[str]) -> list[str]:
    """Normalize ``"get|post"`` or ``["GET", "POST"]`` to uppercase names.

    ``ANY`` expands to every method in :data:`ANY_METHODS`.
    """
    if isinstance(methods, str):
        methods = methods.split("|")
    result: list[str] = []
    for method in methods:
        method = method.strip().upper()
        if not method:
            continue
        if method == "ANY":
            result.extend(ANY_METHODS)
        else:
            result.append(method)
    if not result:
        msg = "At least one HTTP method is required"
        raise ValueError(msg)
    return result


@dataclass(frozen=True, slots=True)
class Route:
    """A pattern bound to a handler for one HTTP method."""

    method: str
    pattern: str
    regex: re.Pattern[str]
    handler: Callable[..., Any]

    @property
    def kind(self) -> str:
        return "route"


@dataclass(frozen=True, slots=True)
class Redirect:
    """A static redirect from one pattern to a target path."""

    method: str
    pattern: str
    regex: re.Pattern[str]
    target: str
    status_code: int = 301

    @property
    def kind(self) -> str:
        return "redirect"

    def location(self, params: tuple[str | None, ...] = ()) -> str:
        """Return the ``Location`` for this redirect.

        Placeholders in the target are filled from *params* by position;
        ``None`` fills an empty segment.  Placeholders without a value are
        left as written.
        """
        values = list(params)

        def fill(m: re.Match[str]) -> str:
            if not values:
                return m.group(0)
            return "/" + (values.pop(0) or "")

        location = _PARAM_RE.sub(fill, self.target)
        if _is_absolute(location):
            return location
        return unify_pattern(location)


def _is_absolute(target: str) -> bool:
    return "://" in target


RouteEntry = Route | Redirect


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match: the entry plus its positional params."""

    route: RouteEntry
    params: tuple[str | None, ...]


class Router:
    """Per-method ordered route table.

    Entries are tried in registration order and the first one whose pattern
    matches the whole path wins.  Ordinary routes and redirects share the
    same sequence.

    Usage::

        router = Router()
        router.add_route("GET", "/greet/{name}", greet)
        router.add_route("GET", "/users", list_users, prefix="/admin")
        router.match("GET", "/greet/alice")  # RouteMatch(route, ("alice",))
    """

    __slots__ = ("_frozen", "_routes")

    def __init__(self) -> None:
        self._routes: dict[str, list[RouteEntry]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> list[RouteEntry]:
        """All entries, grouped by method in first-registration order."""
        return [entry for entries in self._routes.values() for entry in entries]

    def routes_for(self, method: str) -> list[RouteEntry]:
        return list(self._routes.get(method.upper(), ()))

    def freeze(self) -> None:
        """Make the table read-only. Called before the first dispatch."""
        self._frozen = True

    def _append(self, entry: RouteEntry) -> None:
        if self._frozen:
            msg = f"Cannot register {entry.method} {entry.pattern!r}: the router is already serving requests."
            raise RuntimeError(msg)
        self._routes.setdefault(entry.method, []).append(entry)

    def add_route(
        self,
        methods: str | Iterable[str],
        pattern: str,
        handler: Callable[..., Any],
        *,
        prefix: str = "",
    ) -> list[Route]:
        """Register *handler* for *pattern* under each of *methods*."""
        if not callable(handler):
            msg = f"Handler for {pattern!r} must be callable, got {type(handler).__name__}"
            raise TypeError(msg)

        unified = unify_pattern(pattern, prefix)
        regex = compile_pattern(unified)
        added: list[Route] = []
        for method in split_methods(methods):
            route = Route(method, unified, regex, handler)
            self._append(route)
            added.append(route)
        logger.debug("Registered %s %s", "|".join(r.method for r in added), unified)
        return added

    def add_redirect(
        self,
        source: str,
        target: str,
        methods: str | Iterable[str] = "GET",
        status_code: int = 301,
        *,
        prefix: str = "",
    ) -> list[Redirect]:
        """Register a redirect from *source* to *target* under each of *methods*."""
        unified = unify_pattern(source, prefix)
        regex = compile_pattern(unified)
        if not _is_absolute(target):
            target = unify_pattern(target, prefix)
        added: list[Redirect] = []
        for method in split_methods(methods):
            redirect = Redirect(method, unified, regex, target, status_code)
            self._append(redirect)
            added.append(redirect)
        logger.debug("Registered redirect %s -> %s (%d)", unified, target, status_code)
        return added

    def iter_matches(self, method: str, path: str) -> Iterator[RouteMatch]:
        """Yield every entry for *method* matching *path*, in order."""
        for entry in self._routes.get(method.upper(), ()):
            m = entry.regex.match(path)
            if m is not None:
                yield RouteMatch(entry, extract_params(m))

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Return the first match for *method* and *path*, or ``None``."""
        return next(self.iter_matches(method, path), None)
