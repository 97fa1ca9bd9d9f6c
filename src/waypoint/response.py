"""ASGI response classes."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from pydantic import BaseModel

if TYPE_CHECKING:
    from waypoint._types import Send


class Response:
    """A plain HTTP response with a bytes body."""

    media_type = "text/plain; charset=utf-8"

    def __init__(
        self,
        content: bytes | str = b"",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        media_type: str | None = None,
    ) -> None:
        self.body = content.encode("utf-8") if isinstance(content, str) else content
        self.status_code = status_code
        self.headers: dict[str, str] = dict(headers or {})
        if media_type is not None:
            self.media_type = media_type

    def raw_headers(self) -> list[tuple[bytes, bytes]]:
        headers = {k.lower(): v for k, v in self.headers.items()}
        headers.setdefault("content-type", self.media_type)
        headers["content-length"] = str(len(self.body))
        return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()]

    async def send(self, send: Send, *, head: bool = False) -> None:
        """Write the response; with *head* the body is dropped but the headers are kept."""
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers(),
            }
        )
        await send({"type": "http.response.body", "body": b"" if head else self.body})


class JSONResponse(Response):
    """JSON response. Pydantic models are dumped with ``model_dump``."""

    media_type = "application/json"

    def __init__(
        self,
        content: Any,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")
        super().__init__(
            json.dumps(content, separators=(",", ":")).encode("utf-8"),
            status_code=status_code,
            headers=headers,
        )


class RedirectResponse(Response):
    """Empty response carrying a ``Location`` header."""

    def __init__(self, location: str, status_code: int = 301) -> None:
        location = quote(location, safe=":/?#[]@!$&'()*+,;=%")
        super().__init__(b"", status_code=status_code, headers={"location": location})
