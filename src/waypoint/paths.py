"""Request path normalization."""

from __future__ import annotations

from urllib.parse import unquote


def infer_base_path(script_name: str) -> str:
    """Return the directory of the entry script, with a trailing slash.

    ``"/blog/index.py"`` gives ``"/blog/"``; ``""`` gives ``"/"``.
    """
    return "/".join(script_name.split("/")[:-1]) + "/"


def normalize_path(uri: str, base_path: str = "/") -> str:
    """Reduce a raw request URI to the path routes are matched against.

    The URI is percent-decoded, *base_path* is stripped from its start, the
    query string is dropped and the result gets exactly one leading slash
    and no trailing one.
    """
    path = unquote(uri)
    if base_path and path.startswith(base_path):
        path = path[len(base_path) :]
    elif base_path and path.split("?", 1)[0] == base_path.rstrip("/"):
        path = path[len(base_path.rstrip("/")) :]
    path = path.split("?", 1)[0]
    return "/" + path.strip("/")
