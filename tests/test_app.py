"""Tests for the Waypoint application."""

from __future__ import annotations

import asyncio
import time

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from waypoint import JSONResponse, Request, Response, RouterConfig, Waypoint, __version__

# =====================================================================
# Version
# =====================================================================


def test_version() -> None:
    assert __version__ is not None
    assert isinstance(__version__, str)


# =====================================================================
# Registration API
# =====================================================================


class TestRegistration:
    def test_to_with_pipe_methods(self) -> None:
        app = Waypoint()
        calls: list[str] = []
        app.to("/x", "get|post", lambda: calls.append("x"))
        assert app.run(Request("GET", "/x"))
        assert app.run(Request("POST", "/x"))
        assert calls == ["x", "x"]

    def test_shorthand_methods(self) -> None:
        app = Waypoint()
        hit: list[str] = []
        for name in ("get", "post", "put", "delete", "patch", "options"):
            getattr(app, name)(f"/{name}", lambda name=name: hit.append(name))

        for name in ("get", "post", "put", "delete", "patch", "options"):
            assert app.run(Request(name.upper(), f"/{name}"))
        assert hit == ["get", "post", "put", "delete", "patch", "options"]

    def test_decorator_form(self) -> None:
        app = Waypoint()

        @app.get("/greet/{name}")
        def greet(name: str | None = None) -> str:
            return f"Hello {name}"

        assert greet("x") == "Hello x"
        assert app.handle(Request("GET", "/greet/alice")).value == "Hello alice"

    def test_route_decorator(self) -> None:
        app = Waypoint()

        @app.route("/items/{id}", "PUT|PATCH")
        def update(item_id: str) -> str:
            return item_id

        assert app.handle(Request("PATCH", "/items/9")).value == "9"
        assert not app.run(Request("GET", "/items/9"))

    def test_any(self) -> None:
        app = Waypoint()
        app.any("/oops", lambda: "oops")
        for method in ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"):
            assert app.router.match(method, "/oops") is not None

    def test_non_callable_rejected(self) -> None:
        app = Waypoint()
        with pytest.raises(TypeError, match="must be callable"):
            app.get("/x", "nope")  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="must be callable"):
            app.fallback(42)  # type: ignore[arg-type]

    def test_registration_after_first_request_rejected(self) -> None:
        app = Waypoint()
        app.run(Request("GET", "/"))
        with pytest.raises(RuntimeError, match="already serving requests"):
            app.get("/late", lambda: None)


# =====================================================================
# Mounting
# =====================================================================


class TestMount:
    def test_mount_prefixes_routes(self) -> None:
        app = Waypoint()
        app.mount("/admin", lambda: app.get("/users", lambda: "users"))
        app.get("/x", lambda: "x")

        patterns = [route.pattern for route in app.router.routes]
        assert patterns == ["/admin/users", "/x"]
        assert app.handle(Request("GET", "/admin/users")).value == "users"
        assert not app.run(Request("GET", "/users"))

    def test_nested_mounts(self) -> None:
        app = Waypoint()

        def api() -> None:
            app.get("/", lambda: "root")
            app.mount("/v1", lambda: app.get("/items/{id}", lambda item: item))

        app.mount("/api", api)
        assert [r.pattern for r in app.router.routes] == ["/api", "/api/v1/items/{id}"]
        assert app.handle(Request("GET", "/api/v1/items/3")).value == "3"

    def test_mount_restores_prefix_on_error(self) -> None:
        app = Waypoint()

        def broken() -> None:
            app.get("/ok", lambda: None)
            raise RuntimeError("setup failed")

        with pytest.raises(RuntimeError, match="setup failed"):
            app.mount("/admin", broken)

        app.get("/after", lambda: None)
        assert [r.pattern for r in app.router.routes] == ["/admin/ok", "/after"]

    def test_mounted_context_manager(self) -> None:
        app = Waypoint()
        with app.mounted("/admin"):
            app.get("/users", lambda: None)
            app.redirect("/old", "/new")
        app.get("/users", lambda: None)
        assert [(r.kind, r.pattern) for r in app.router.routes] == [
            ("route", "/admin/users"),
            ("redirect", "/admin/old"),
            ("route", "/users"),
        ]


# =====================================================================
# run / handle / fallback
# =====================================================================


class TestRun:
    def test_fallback_called_once_on_miss(self) -> None:
        app = Waypoint()
        misses: list[int] = []
        app.get("/", lambda: None)
        app.fallback(lambda: misses.append(1))
        assert app.run(Request("GET", "/missing")) is False
        assert misses == [1]

    def test_not_found_signal_without_fallback(self) -> None:
        app = Waypoint()
        result = app.handle(Request("GET", "/missing"))
        assert result.handled == 0
        assert result.not_found is True

    def test_fallback_not_called_on_match(self) -> None:
        app = Waypoint()
        misses: list[int] = []
        app.get("/", lambda: None)
        app.set_fallback(lambda: misses.append(1))
        assert app.run(Request("GET", "/")) is True
        assert misses == []

    def test_on_handled_only_after_match(self) -> None:
        app = Waypoint()
        done: list[str] = []
        app.get("/", lambda: None)
        app.run(Request("GET", "/"), on_handled=lambda: done.append("hit"))
        app.run(Request("GET", "/nope"), on_handled=lambda: done.append("miss"))
        assert done == ["hit"]

    def test_head_dispatches_get_handler(self) -> None:
        app = Waypoint()
        app.get("/page", lambda: "body")
        result = app.handle(Request("HEAD", "/page"))
        assert result.handled == 1
        assert result.suppress_body is True

    def test_method_override(self) -> None:
        app = Waypoint()
        app.delete("/users/{id}", lambda user_id: f"deleted {user_id}")
        result = app.handle(Request("POST", "/users/4", {"X-HTTP-Method-Override": "DELETE"}))
        assert result.value == "deleted 4"

    def test_greet_examples(self) -> None:
        app = Waypoint()
        seen: list[str | None] = []
        app.get("/greet/{name}", lambda name=None: seen.append(name))
        app.run(Request("GET", "/greet/alice"))
        app.run(Request("GET", "/greet/"))
        assert seen == ["alice", None]

    def test_first_match_only_from_config(self) -> None:
        app = Waypoint(first_match_only=False)
        hits: list[str] = []
        app.get("/a", lambda: hits.append("one"))
        app.get("/{x}", lambda x: hits.append("two"))
        assert app.handle(Request("GET", "/a")).handled == 2
        assert hits == ["one", "two"]


class TestBasePath:
    def test_inferred_from_script_name(self) -> None:
        app = Waypoint()
        app.get("/about", lambda: "about")
        assert app.run(Request("GET", "/blog/about", script_name="/blog/index.py"))
        assert app.get_base_path(Request("GET", "/")) == "/blog/"

    def test_inferred_once_and_cached(self) -> None:
        app = Waypoint()
        app.get("/about", lambda: "about")
        app.run(Request("GET", "/blog/about", script_name="/blog/index.py"))
        assert not app.run(Request("GET", "/shop/about", script_name="/shop/index.py"))

    def test_explicit_base_path(self) -> None:
        app = Waypoint()
        app.set_base_path("/site/")
        app.get("/about", lambda: "about")
        assert app.run(Request("GET", "/site/about", script_name="/blog/index.py"))

    def test_base_path_from_config(self) -> None:
        app = Waypoint(RouterConfig(base_path="/site/"))
        app.get("/about", lambda: "about")
        assert app.run(Request("GET", "/site/about"))


class TestServe:
    @pytest.fixture
    def calls(self, monkeypatch: pytest.MonkeyPatch) -> dict:
        recorded: dict = {}
        monkeypatch.setattr("waypoint.app._resolve_target", lambda app: "main:app")
        monkeypatch.setattr("waypoint._server.serve", lambda target, **kw: recorded.update(target=target, **kw))
        return recorded

    def test_log_level_from_config(self, calls: dict) -> None:
        Waypoint(log_level="warning").serve()
        assert calls["target"] == "main:app"
        assert calls["log_level"] == "warning"

    def test_log_level_from_env(self, calls: dict) -> None:
        Waypoint(RouterConfig.from_env(environ={"WAYPOINT_LOG_LEVEL": "DEBUG"})).serve()
        assert calls["log_level"] == "debug"

    def test_explicit_log_level_wins(self, calls: dict) -> None:
        Waypoint(log_level="warning").serve(log_level="error")
        assert calls["log_level"] == "error"


class TestStrictMode:
    def test_rejects_handler_without_param_slots(self) -> None:
        app = Waypoint(strict=True)
        with pytest.raises(TypeError, match="accepts only 0 positional argument"):
            app.get("/greet/{name}", lambda: None)

    def test_rejects_extra_required_params(self) -> None:
        app = Waypoint(strict=True)
        with pytest.raises(TypeError, match="requires 2 positional argument"):
            app.get("/greet/{name}", lambda a, b: None)

    def test_accepts_matching_handler(self) -> None:
        app = Waypoint(strict=True)
        app.get("/greet/{name}", lambda name=None: None)
        app.fallback(lambda: None)
        assert len(app.router.routes) == 1

    def test_mounted_pattern_in_message(self) -> None:
        app = Waypoint(strict=True)
        with pytest.raises(TypeError, match=r"GET /admin/users/\{id\}"), app.mounted("/admin"):
            app.get("/users/{id}", lambda: None)


# =====================================================================
# ASGI end-to-end
# =====================================================================


def _make_client(app: Waypoint) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    )


@pytest.mark.asyncio
async def test_simple_get() -> None:
    app = Waypoint()
    app.get("/hello", lambda: JSONResponse({"msg": "hi"}))

    async with _make_client(app) as client:
        resp = await client.get("/hello")
        assert resp.status_code == 200
        assert resp.json() == {"msg": "hi"}


@pytest.mark.asyncio
async def test_path_params() -> None:
    app = Waypoint()

    @app.get("/greet/{name}")
    def greet(name: str | None = None) -> str:
        return f"Hello {name} :)"

    async with _make_client(app) as client:
        resp = await client.get("/greet/alice")
        assert resp.status_code == 200
        assert resp.text == "Hello alice :)"
        assert resp.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_404_without_fallback() -> None:
    app = Waypoint()

    async with _make_client(app) as client:
        resp = await client.get("/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_fallback_response() -> None:
    app = Waypoint()
    app.fallback(lambda: "404 Not Found")

    async with _make_client(app) as client:
        resp = await client.get("/nope")
        assert resp.status_code == 404
        assert resp.text == "404 Not Found"


@pytest.mark.asyncio
async def test_fallback_can_choose_status() -> None:
    app = Waypoint()
    app.fallback(lambda: Response("gone", status_code=410))

    async with _make_client(app) as client:
        resp = await client.get("/nope")
        assert resp.status_code == 410


@pytest.mark.asyncio
async def test_redirect() -> None:
    app = Waypoint()
    app.redirect("/old", "/new")
    app.redirect("/temp", "/new", status_code=302)

    async with _make_client(app) as client:
        resp = await client.get("/old")
        assert resp.status_code == 301
        assert resp.headers["location"] == "/new"

        resp = await client.get("/temp")
        assert resp.status_code == 302


@pytest.mark.asyncio
async def test_head_has_no_body() -> None:
    app = Waypoint()
    app.get("/page", lambda: "some body")

    async with _make_client(app) as client:
        resp = await client.head("/page")
        assert resp.status_code == 200
        assert resp.content == b""


@pytest.mark.asyncio
async def test_method_override_header() -> None:
    app = Waypoint()
    app.delete("/users/{id}", lambda user_id: {"deleted": user_id})

    async with _make_client(app) as client:
        resp = await client.post("/users/7", headers={"X-HTTP-Method-Override": "DELETE"})
        assert resp.status_code == 200
        assert resp.json() == {"deleted": "7"}


@pytest.mark.asyncio
async def test_500_on_handler_error() -> None:
    app = Waypoint()

    def boom() -> None:
        raise RuntimeError("kaboom")

    app.get("/boom", boom)

    async with _make_client(app) as client:
        resp = await client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal Server Error"}


@pytest.mark.asyncio
async def test_500_includes_traceback_in_debug() -> None:
    app = Waypoint(debug=True)

    def boom() -> None:
        raise RuntimeError("kaboom")

    app.get("/boom", boom)

    async with _make_client(app) as client:
        resp = await client.get("/boom")
        assert resp.status_code == 500
        assert "kaboom" in resp.json()["traceback"]


@pytest.mark.asyncio
async def test_async_handler_awaited() -> None:
    app = Waypoint()

    async def hello(name: str | None) -> dict:
        return {"hello": name}

    app.get("/hi/{name}", hello)

    async with _make_client(app) as client:
        resp = await client.get("/hi/bob")
        assert resp.json() == {"hello": "bob"}


@pytest.mark.asyncio
async def test_pydantic_model_response() -> None:
    class Item(BaseModel):
        name: str
        price: float

    app = Waypoint()
    app.get("/item", lambda: Item(name="Widget", price=9.99))

    async with _make_client(app) as client:
        resp = await client.get("/item")
        assert resp.status_code == 200
        assert resp.json() == {"name": "Widget", "price": 9.99}


@pytest.mark.asyncio
async def test_none_return_is_empty_200() -> None:
    app = Waypoint()
    app.post("/ping", lambda: None)

    async with _make_client(app) as client:
        resp = await client.post("/ping")
        assert resp.status_code == 200
        assert resp.content == b""


@pytest.mark.asyncio
async def test_lifespan() -> None:
    app = Waypoint()
    messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
    sent: list[dict] = []

    async def receive() -> dict:
        return messages.pop(0)

    async def send(message: dict) -> None:
        sent.append(message)

    await app({"type": "lifespan"}, receive, send)
    assert [m["type"] for m in sent] == ["lifespan.startup.complete", "lifespan.shutdown.complete"]


@pytest.mark.asyncio
async def test_sync_handlers_do_not_block_each_other() -> None:
    app = Waypoint()

    @app.get("/slow")
    def slow() -> str:
        time.sleep(0.3)
        return "done"

    async with _make_client(app) as client:
        started = time.perf_counter()
        responses = await asyncio.gather(*(client.get("/slow") for _ in range(3)))
        elapsed = time.perf_counter() - started

    assert [r.text for r in responses] == ["done"] * 3
    assert elapsed < 0.75


@pytest.mark.asyncio
async def test_head_on_miss_has_no_body() -> None:
    app = Waypoint()

    async with _make_client(app) as client:
        resp = await client.head("/nope")
        assert resp.status_code == 404
        assert resp.content == b""

    app = Waypoint()
    app.fallback(lambda: "404 Not Found")

    async with _make_client(app) as client:
        resp = await client.head("/nope")
        assert resp.status_code == 404
        assert resp.content == b""


@pytest.mark.asyncio
async def test_head_on_redirect_has_no_body() -> None:
    app = Waypoint()
    app.redirect("/old", "/new")

    async with _make_client(app) as client:
        resp = await client.head("/old")
        assert resp.status_code == 301
        assert resp.headers["location"] == "/new"
        assert resp.content == b""
