"""Request descriptor handed to the router."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from waypoint._types import Scope


class Request:
    """The parts of an HTTP request that routing depends on.

    *headers* is copied into a lowercase-keyed dict.  *script_name* is the
    location of the entry point (CGI/WSGI ``SCRIPT_NAME``), used to infer the
    base path when none is configured.
    """

    __slots__ = ("headers", "method", "script_name", "uri")

    def __init__(
        self,
        method: str,
        uri: str,
        headers: Mapping[str, str] | None = None,
        script_name: str = "",
    ) -> None:
        self.method = method.upper()
        self.uri = uri
        self.headers: dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.script_name = script_name

    @classmethod
    def from_scope(cls, scope: Scope) -> Request:
        """Build a request from an ASGI HTTP *scope*."""
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else scope.get("path", "/")
        query = scope.get("query_string", b"")
        uri = f"{path}?{query.decode('latin-1')}" if query else path
        headers = {k.decode("latin-1"): v.decode("latin-1") for k, v in scope.get("headers", [])}
        # root_path is a directory, so give it the trailing slash a script path's parent would have
        root_path = scope.get("root_path", "")
        script_name = root_path.rstrip("/") + "/" if root_path else ""
        return cls(scope["method"], uri, headers, script_name)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Request:
        """Build a request from a WSGI/CGI *environ*.

        Headers come from the ``HTTP_*`` keys plus ``CONTENT_TYPE`` and
        ``CONTENT_LENGTH``, with ``HTTP_X_FOO_BAR`` becoming ``x-foo-bar``.
        """
        headers: dict[str, str] = {}
        for name, value in environ.items():
            if name.startswith("HTTP_"):
                headers[name[5:].replace("_", "-").lower()] = value
            elif name in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                headers[name.replace("_", "-").lower()] = value

        script_name = environ.get("SCRIPT_NAME", "")
        uri = environ.get("REQUEST_URI")
        if uri is None:
            # Plain WSGI: SCRIPT_NAME is the mount point, not a file
            uri = script_name + environ.get("PATH_INFO", "/")
            if environ.get("QUERY_STRING"):
                uri = f"{uri}?{environ['QUERY_STRING']}"
            script_name = script_name.rstrip("/") + "/" if script_name else ""
        return cls(environ.get("REQUEST_METHOD", "GET"), uri, headers, script_name)

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Get a header value by name (case-insensitive)."""
        return self.headers.get(name.lower(), default)

    def __repr__(self) -> str:
        return f"Request({self.method!r}, {self.uri!r})"
