"""Granian server launcher used by ``Waypoint.serve`` and the CLI."""

import logging
import sys
from typing import Any

from waypoint.logging_config import setup_logging

logger = logging.getLogger(__name__)


def serve(
    target: str,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    dev: bool = False,
    reload: bool | None = None,
    workers: int = 1,
    log_level: str = "info",
    log_access: bool = False,
    granian_kwargs: dict[str, Any] | None = None,
) -> None:
    """Serve the ASGI app at *target* (``"module:var"``) with Granian.

    Parameters
    ----------
    dev:
        Development defaults: reload on, debug logging, access logs.
        An explicit *reload* still wins.
    reload:
        Enable auto-reload.  ``None`` means follow *dev*.
    """
    from granian import Granian

    if dev:
        log_level = "debug"
        log_access = True
    reload = dev if reload is None else reload

    setup_logging(log_level)
    _print_banner(target, host=host, port=port, workers=workers, reload=reload, dev=dev)
    logger.debug("Granian options: %r", granian_kwargs)

    server = Granian(
        target=target,
        address=host,
        port=port,
        interface="asgi",
        workers=workers,
        reload=reload,
        log_level=log_level,
        log_access=log_access,
        **(granian_kwargs or {}),
    )
    server.serve()


_CYAN = "\033[36m"
_GREEN = "\033[32m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


def _print_banner(
    target: str,
    *,
    host: str,
    port: int,
    workers: int,
    reload: bool,
    dev: bool,
) -> None:
    color = sys.stdout.isatty()

    def c(code: str, text: str) -> str:
        return f"{code}{text}{_RESET}" if color else text

    rows = [
        ("app", target),
        ("listening", f"http://{host}:{port}"),
        ("workers", str(workers)),
        ("reload", "on" if reload else "off"),
    ]
    mode = "dev" if dev else "production"
    lines = [f"{c(_BOLD + _CYAN, 'Waypoint')} ({mode})", ""]
    lines += [f"  {c(_GREEN, label.ljust(10))} {value}" for label, value in rows]
    print("\n".join([*lines, ""]), flush=True)
