"""Waypoint command-line interface powered by Typer."""

import importlib
import sys
from pathlib import Path
from typing import Annotated

import typer

from waypoint.app import Waypoint
from waypoint.request import Request
from waypoint.routing import Redirect

app = typer.Typer(name="waypoint", add_completion=False, no_args_is_help=True)


# ------------------------------------------------------------------
# Target resolution
# ------------------------------------------------------------------


def _import(module_name: str, parent: str | None = None) -> object:
    if parent is not None and parent not in sys.path:
        sys.path.insert(0, parent)
    try:
        return importlib.import_module(module_name)
    except Exception as exc:
        typer.echo(f"Error importing {module_name!r}: {exc}", err=True)
        raise typer.Exit(1) from exc


def _resolve_cli_target(path: str) -> str:
    """Turn a CLI *path* argument into a ``"module:var"`` string.

    Accepted forms:
    - ``module:var``   returned as-is
    - ``file.py``      imports ``file`` and scans it for a Waypoint instance
    """
    if ":" in path:
        return path

    file = Path(path)
    if not file.exists():
        typer.echo(f"Error: file {path!r} not found.", err=True)
        raise typer.Exit(1)

    mod = _import(file.stem, str(file.resolve().parent))
    var_name = _find_waypoint_var(mod)
    if var_name is None:
        typer.echo(
            f"Error: no Waypoint instance found in {path!r}. Provide an explicit target, e.g. main:app",
            err=True,
        )
        raise typer.Exit(1)

    return f"{file.stem}:{var_name}"


def _find_waypoint_var(mod: object) -> str | None:
    """Scan a module for a ``Waypoint`` instance.

    Checks ``app`` and ``router`` first, then falls back to any attribute.
    """
    for name in ("app", "router"):
        if isinstance(getattr(mod, name, None), Waypoint):
            return name

    for name in dir(mod):
        if name.startswith("_"):
            continue
        if isinstance(getattr(mod, name, None), Waypoint):
            return name

    return None


def _load_app(path: str) -> Waypoint:
    module_name, var_name = _resolve_cli_target(path).split(":", 1)
    parent = str(Path(path).resolve().parent) if ":" not in path else str(Path.cwd())
    target = getattr(_import(module_name, parent), var_name, None)
    if not isinstance(target, Waypoint):
        typer.echo(f"Error: {path!r} is not a Waypoint instance.", err=True)
        raise typer.Exit(1)
    return target


def _describe(entry: object) -> str:
    if isinstance(entry, Redirect):
        return f"-> {entry.target} ({entry.status_code})"
    handler = getattr(entry, "handler", None)
    return getattr(handler, "__qualname__", repr(handler))


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@app.command()
def dev(
    path: Annotated[str, typer.Argument(help="Python file or module:var target.")] = "main.py",
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Bind port.")] = 8000,
    reload: Annotated[bool | None, typer.Option("--reload/--no-reload", help="Auto-reload on code changes.")] = None,
) -> None:
    """Start a development server with auto-reload and debug logging."""
    from waypoint._server import serve

    target = _resolve_cli_target(path)
    serve(target, host=host, port=port, dev=True, reload=reload)


@app.command()
def run(
    path: Annotated[str, typer.Argument(help="Python file or module:var target.")] = "main.py",
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Bind port.")] = 8000,
    workers: Annotated[int, typer.Option(help="Number of worker processes.")] = 1,
) -> None:
    """Start a production server."""
    from waypoint._server import serve

    target = _resolve_cli_target(path)
    serve(target, host=host, port=port, workers=workers)


@app.command()
def routes(
    path: Annotated[str, typer.Argument(help="Python file or module:var target.")] = "main.py",
) -> None:
    """List registered routes in the order they are tried."""
    waypoint = _load_app(path)
    entries = waypoint.router.routes
    if not entries:
        typer.echo("No routes registered.")
        return

    width = max(len(entry.pattern) for entry in entries)
    for entry in entries:
        typer.echo(f"{entry.method:<8} {entry.kind:<9} {entry.pattern:<{width}}  {_describe(entry)}")


@app.command()
def match(
    method: Annotated[str, typer.Argument(help="HTTP method, e.g. GET.")],
    uri: Annotated[str, typer.Argument(help="Request URI, e.g. /greet/alice?x=1.")],
    path: Annotated[str, typer.Argument(help="Python file or module:var target.")] = "main.py",
    header: Annotated[list[str] | None, typer.Option("--header", "-H", help="Request header as NAME:VALUE.")] = None,
) -> None:
    """Show which route a request would hit, without running its handler."""
    waypoint = _load_app(path)
    headers: dict[str, str] = {}
    for item in header or []:
        name, sep, value = item.partition(":")
        if not sep:
            typer.echo(f"Error: header {item!r} must look like NAME:VALUE.", err=True)
            raise typer.Exit(2)
        headers[name.strip()] = value.strip()

    request = Request(method, uri, headers)
    result, found = waypoint.dispatcher(request).matches(request)
    typer.echo(f"{result.method} {result.path}")
    if not found:
        typer.echo("no match")
        raise typer.Exit(1)

    for route_match in found:
        entry = route_match.route
        typer.echo(f"  {entry.kind} {entry.pattern}  {_describe(entry)}  params={list(route_match.params)!r}")
