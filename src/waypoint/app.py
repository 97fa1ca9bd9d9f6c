"""Waypoint application: registration API, dispatch entry point and ASGI transport."""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
import traceback
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from waypoint._types import Handler, Receive, Scope, Send
from waypoint.config import RouterConfig
from waypoint.dispatch import DispatchResult, Dispatcher
from waypoint.paths import infer_base_path
from waypoint.request import Request
from waypoint.response import JSONResponse, RedirectResponse, Response
from waypoint.routing import Redirect, Route, Router, compile_pattern, join_prefix, split_methods, unify_pattern
from waypoint.validation import validate_handler_signature

logger = logging.getLogger(__name__)


class Waypoint:
    """Callback router and ASGI 3.0 application.

    Parameters
    ----------
    config:
        A :class:`RouterConfig`; keyword *settings* override its fields,
        e.g. ``Waypoint(strict=True, debug=True)``.

    Usage::

        app = Waypoint()
        app.get("/greet/{name}", lambda name: f"Hello {name}")

        @app.post("/users/{id}")
        def update_user(user_id): ...

        app.mount("/admin", lambda: app.get("/users", list_users))
        app.fallback(lambda: Response("Nope", status_code=404))
    """

    def __init__(self, config: RouterConfig | None = None, **settings: Any) -> None:
        if config is None:
            config = RouterConfig(**settings)
        elif settings:
            config = RouterConfig(**{**config.model_dump(), **settings})
        self.config = config
        self.router = Router()
        self._prefix = ""
        self._fallback: Handler | None = None
        self._base_path = config.base_path
        self._dispatcher: Dispatcher | None = None

    @property
    def strict(self) -> bool:
        return self.config.strict

    @property
    def debug(self) -> bool:
        return self.config.debug

    # ------------------------------------------------------------------
    # Route registration
    # ------------------------------------------------------------------

    def to(self, pattern: str, methods: str | Iterable[str], handler: Handler) -> list[Route]:
        """Route *pattern* to *handler* for each of *methods* (``"GET|POST"``)."""
        methods = split_methods(methods)
        if self.strict and callable(handler):
            unified = unify_pattern(pattern, self._prefix)
            count = compile_pattern(unified).groups
            for method in methods:
                validate_handler_signature(handler, unified, method, count)
        return self.router.add_route(methods, pattern, handler, prefix=self._prefix)

    def route(self, pattern: str, methods: str | Iterable[str] = "GET") -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.to(pattern, methods, handler)
            return handler

        return decorator

    def _shorthand(self, methods: str, pattern: str, handler: Handler | None) -> Any:
        if handler is None:
            return self.route(pattern, methods)
        self.to(pattern, methods, handler)
        return handler

    def get(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("GET", pattern, handler)

    def post(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("POST", pattern, handler)

    def put(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("PUT", pattern, handler)

    def delete(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("DELETE", pattern, handler)

    def patch(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("PATCH", pattern, handler)

    def options(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("OPTIONS", pattern, handler)

    def head(self, pattern: str, handler: Handler | None = None) -> Any:
        return self._shorthand("HEAD", pattern, handler)

    def any(self, pattern: str, handler: Handler | None = None) -> Any:
        """Route *pattern* for GET, POST, PUT, DELETE, OPTIONS, PATCH and HEAD."""
        return self._shorthand("ANY", pattern, handler)

    def redirect(
        self,
        source: str,
        target: str,
        method: str | Iterable[str] = "GET",
        status_code: int | None = None,
    ) -> list[Redirect]:
        """Redirect *source* to *target*.  The status defaults to ``config.redirect_status``."""
        if status_code is None:
            status_code = self.config.redirect_status
        return self.router.add_redirect(source, target, method, status_code, prefix=self._prefix)

    @contextmanager
    def mounted(self, prefix: str) -> Iterator[None]:
        """Prefix every route registered inside the ``with`` block with *prefix*."""
        previous = self._prefix
        self._prefix = join_prefix(previous, prefix)
        try:
            yield
        finally:
            self._prefix = previous

    def mount(self, prefix: str, fn: Callable[[], Any]) -> None:
        """Call *fn* with every registration it makes prefixed by *prefix*."""
        with self.mounted(prefix):
            fn()

    def fallback(self, handler: Handler) -> Handler:
        """Set the handler run when no route matches.  Usable as a decorator."""
        if not callable(handler):
            msg = f"Fallback handler must be callable, got {type(handler).__name__}"
            raise TypeError(msg)
        if self.strict:
            validate_handler_signature(handler, "<fallback>", "ANY", 0)
        self._fallback = handler
        return handler

    set_fallback = fallback

    # ------------------------------------------------------------------
    # Base path
    # ------------------------------------------------------------------

    def set_base_path(self, base_path: str) -> None:
        """Override the inferred base path.  Call before the first request."""
        self._base_path = base_path
        if self._dispatcher is not None:
            self._dispatcher.base_path = base_path

    def get_base_path(self, request: Request) -> str:
        """Return the base path, inferring it from *request* on first use."""
        if self._base_path is None:
            self._base_path = infer_base_path(request.script_name)
            logger.debug("Inferred base path %r", self._base_path)
        return self._base_path

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatcher(self, request: Request) -> Dispatcher:
        if self._dispatcher is None:
            self.router.freeze()
            self._dispatcher = Dispatcher(
                self.router,
                self.get_base_path(request),
                first_match_only=self.config.first_match_only,
            )
        return self._dispatcher

    def handle(self, request: Request, on_handled: Callable[[], Any] | None = None) -> DispatchResult:
        """Dispatch *request*, then run *on_handled* on a match or the fallback on a miss.

        With no fallback configured the result comes back with
        ``not_found`` set for the transport to answer 404.
        """
        result = self.dispatcher(request).dispatch(request)
        if result.handled:
            if on_handled is not None:
                on_handled()
        elif self._fallback is not None:
            result.value = self._fallback()
        else:
            result.not_found = True
        return result

    def run(self, request: Request, on_handled: Callable[[], Any] | None = None) -> bool:
        """Dispatch *request*; return ``True`` if a route handled it."""
        return self.handle(request, on_handled).handled > 0

    # ------------------------------------------------------------------
    # ASGI interface
    # ------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await _handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_scope(scope)
        head = request.method == "HEAD"
        try:
            # built here so the router freezes on the loop thread
            self.dispatcher(request)
            # sync handlers must not block the event loop
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, self.handle, request)
            value = result.value
            if inspect.isawaitable(value):
                value = await value
        except Exception:
            logger.exception("Unhandled error dispatching %s %s", request.method, request.uri)
            body: dict[str, Any] = {"detail": "Internal Server Error"}
            if self.debug:
                body["traceback"] = traceback.format_exc()
            await JSONResponse(body, status_code=500).send(send, head=head)
            return

        if result.redirect is not None:
            response: Response = RedirectResponse(result.redirect.location, result.redirect.status_code)
        elif result.not_found:
            logger.info("404 %s %s", request.method, request.uri)
            response = JSONResponse({"detail": "Not Found"}, status_code=404)
        else:
            response = _to_response(value, status_code=200 if result.handled else 404)
        await response.send(send, head=result.suppress_body)

    # ------------------------------------------------------------------
    # Granian convenience
    # ------------------------------------------------------------------

    def serve(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        *,
        dev: bool = False,
        reload: bool | None = None,
        workers: int = 1,
        log_level: str | None = None,
        **granian_kwargs: Any,
    ) -> None:
        """Start the app with Granian.

        Parameters
        ----------
        dev:
            When ``True``, enables reload, debug logging, and access logs.
        reload:
            Auto-reload on code changes.  ``None`` follows *dev*.
        workers:
            Number of worker processes.
        log_level:
            Granian and ``waypoint`` logger level.  ``None`` uses
            ``config.log_level``.
        """
        from waypoint._server import serve

        if log_level is None:
            log_level = self.config.log_level.lower()
        target = _resolve_target(self)
        serve(
            target,
            host=host,
            port=port,
            dev=dev,
            reload=reload,
            workers=workers,
            log_level=log_level,
            granian_kwargs=granian_kwargs or None,
        )


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _resolve_target(app: Waypoint) -> str:
    """Derive a ``"module:var"`` string for the given app instance.

    Searches ``__main__`` for a module-level variable whose value *is* the
    app.  Falls back to the caller's ``__file__`` stem when running as a
    script (``python main.py``) so Granian workers can import it.
    """
    main = sys.modules.get("__main__")
    if main is None:
        raise RuntimeError(
            "Cannot auto-detect Granian target: __main__ module not found. "
            "Use the CLI with an explicit target, e.g. waypoint run myapp:app."
        )

    var_name: str | None = None
    for name, val in vars(main).items():
        if val is app:
            var_name = name
            break

    if var_name is None:
        raise RuntimeError(
            "Cannot auto-detect Granian target: no module-level variable in "
            "__main__ references this Waypoint instance. "
            "Use the CLI with an explicit target, e.g. waypoint run myapp:app."
        )

    spec = getattr(main, "__spec__", None)
    module_name: str | None = spec.name if spec else None
    if not module_name:
        main_file = getattr(main, "__file__", None)
        module_name = Path(main_file).stem if main_file else None

    return f"{module_name}:{var_name}"


async def _handle_lifespan(receive: Receive, send: Send) -> None:
    """Minimal lifespan responder: accept startup/shutdown with no-ops."""
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            await send({"type": "lifespan.shutdown.complete"})
            return


def _to_response(value: Any, status_code: int = 200) -> Response:
    if isinstance(value, Response):
        return value
    if isinstance(value, dict | list | BaseModel):
        return JSONResponse(value, status_code=status_code)
    if value is None:
        return Response(b"", status_code=status_code)
    if isinstance(value, bytes):
        return Response(value, status_code=status_code)
    return Response(str(value), status_code=status_code)
