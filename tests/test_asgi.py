"""Tests for the ASGI adapter and TestClient — streaming over the wire."""

from typing import Any

import anyio

from perch import RenderAborted, Request, Response, SiteConfig, StreamOptions, create_server, json
from perch.adapters.asgi import AdapterOptions, create_asgi_app, send_response
from perch.testing import TestClient


class BrokenTemplate:
    def render(self, context: dict[str, Any]) -> str:
        msg = "shell exploded"
        raise RuntimeError(msg)


def _props(**props: Any) -> dict:
    return {"get_server_side_props": lambda ctx: {"props": props}}


class TestClientRequests:
    async def test_get_page(self, view) -> None:
        server = create_server({"": {"view": view("home.html"), "server": _props(name="wire")}})
        async with TestClient(server) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.content_type == "text/html"
        assert response.text.startswith("<!doctype html>")
        assert "<h1>Hello wire</h1>" in response.text
        assert response.text.endswith("</html>")

    async def test_deferred_content_streamed(self, view) -> None:
        async def load_stats() -> list[int]:
            await anyio.sleep(0.01)
            return [4, 2]

        server = create_server(
            {"": {"view": view("stats.html"), "server": {"get_server_side_props": lambda ctx: {"props": {"stats": load_stats()}}}}}
        )
        response = await TestClient(server).get("/")
        assert "Loading stats" in response.text
        assert '<template id="_perch_d_stats"><ul><li>4</li><li>2</li></ul></template>' in response.text

    async def test_form_post(self, view) -> None:
        submitted = []

        async def on_submit(ctx) -> dict:
            form = await ctx.request.form()
            submitted.append(form["name"])
            return {"name": form["name"]}

        def get_server_side_props(ctx) -> dict:
            return {"props": {"name": ctx.form_data["name"] if ctx.form_data else "nobody"}}

        server = create_server(
            {"": {"view": view("home.html"), "server": {"on_submit": on_submit, "get_server_side_props": get_server_side_props}}}
        )
        response = await TestClient(server).post("/", data={"name": "ann"})
        assert response.status == 200
        assert "<h1>Hello ann</h1>" in response.text
        assert submitted == ["ann"]

    async def test_json_post_rejected(self, view) -> None:
        server = create_server({"": {"view": view("home.html"), "server": {"on_submit": lambda ctx: None}}})
        response = await TestClient(server).post("/", json={"name": "ann"})
        assert response.status == 415
        assert response.text == ""

    async def test_method_not_allowed(self, view) -> None:
        server = create_server({"": {"view": view("home.html")}})
        response = await TestClient(server).put("/")
        assert response.status == 405
        assert response.header("allow") == "GET"

    async def test_custom_handler_json(self, view) -> None:
        server = create_server(
            {"": {"view": view("home.html"), "server": {"on_request": {"DELETE": lambda ctx, next_: json({"ok": True})}}}}
        )
        response = await TestClient(server).delete("/")
        assert response.status == 200
        assert response.text == '{"ok": true}'

    async def test_redirect(self, view) -> None:
        server = create_server({"": {"view": view("home.html"), "server": {"get_server_side_props": lambda ctx: {"redirect_url": "/login"}}}})
        response = await TestClient(server).get("/")
        assert response.status == 302
        assert response.header("location") == "/login"
        assert response.text == ""

    async def test_context(self, view) -> None:
        server = create_server(
            {"": {"view": view("home.html"), "server": {"get_server_side_props": lambda ctx: {"props": {"name": ctx.context}}}}}
        )
        response = await TestClient(server, context="ctx-user").get("/")
        assert "<h1>Hello ctx-user</h1>" in response.text

    async def test_params_decoded_once(self, view) -> None:
        server = create_server(
            {"echo/[param]": {"view": view("echo.html"), "server": {"get_server_side_props": lambda ctx: {"props": {"message": ctx.params["param"]}}}}}
        )
        response = await TestClient(server).get("/echo/50%2525")
        assert "<p>echo:50%25</p>" in response.text

    async def test_query_string(self, view) -> None:
        server = create_server(
            {"": {"view": view("home.html"), "server": {"get_server_side_props": lambda ctx: {"props": {"name": ctx.request.query.get("q")}}}}}
        )
        response = await TestClient(server).get("/?q=search")
        assert "<h1>Hello search</h1>" in response.text

    async def test_adapter_head_and_tail(self, view) -> None:
        server = create_server({"": {"view": view("home.html"), "server": _props(name="x")}})
        options = AdapterOptions(head='<meta charset="utf-8">', tail="<!-- end -->")
        response = await TestClient(server, options=options).get("/")
        assert '<head><meta charset="utf-8"></head>' in response.text
        assert response.text.endswith("<!-- end --></body></html>")

    async def test_wait_for_all_ready_predicate(self, view) -> None:
        seen = []

        def crawler(request) -> bool:
            seen.append(request.headers.get("user-agent"))
            return True

        server = create_server({"": {"view": view("home.html"), "server": _props(name="x")}})
        response = await TestClient(server, options=AdapterOptions(wait_for_all_ready=crawler)).get(
            "/", headers={"User-Agent": "bot"}
        )
        assert response.status == 200
        assert seen == ["bot"]


class TestShellErrors:
    async def test_recovered_with_error_page(self, view, caplog) -> None:
        server = create_server({"": {"view": {"template": BrokenTemplate()}}})
        with caplog.at_level("ERROR", logger="perch.server"):
            response = await TestClient(server).get("/")
        assert response.status == 500
        assert "Application error" in response.text
        assert "Error rendering page shell" in caplog.text

    async def test_debug_error_page_shows_shell_error(self, view) -> None:
        server = create_server({"": {"view": {"template": BrokenTemplate()}}}, config=SiteConfig(debug=True))
        response = await TestClient(server).get("/")
        assert "shell exploded" in response.text

    async def test_failed_recovery_sends_plain_500(self, view) -> None:
        server = create_server(
            {"": {"view": {"template": BrokenTemplate()}}},
            error={"view": {"template": BrokenTemplate()}},
        )
        response = await TestClient(server).get("/")
        assert response.status == 500
        assert response.text == "Internal Server Error"


class TestSendResponse:
    @staticmethod
    async def _stream_until_disconnect(view, stream_options: StreamOptions | None = None) -> list[dict[str, Any]]:
        async def never() -> list[int]:
            await anyio.Event().wait()
            return []

        server = create_server(
            {"": {"view": view("stats.html"), "server": {"get_server_side_props": lambda ctx: {"props": {"stats": never()}}}}}
        )
        response = await server(Request.build("GET", "/"))
        messages: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            # The client leaves while deferred data is still pending
            await anyio.sleep(0.02)
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            messages.append(message)

        with anyio.fail_after(2):
            await send_response(response, send, receive, stream_options=stream_options)
        return messages

    async def test_disconnect_aborts_and_closes_document(self, view) -> None:
        messages = await self._stream_until_disconnect(view)
        assert messages[0]["type"] == "http.response.start"
        assert messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}
        body = b"".join(m.get("body", b"") for m in messages[1:])
        assert b"Loading stats" in body
        assert b"_perch_d_" not in body
        assert body.endswith(b"</div></body></html>")

    async def test_disconnect_while_waiting_for_all_ready(self, view) -> None:
        errors: list[BaseException] = []
        options = StreamOptions(on_error=errors.append, wait_for_all_ready=True)
        messages = await self._stream_until_disconnect(view, options)
        assert len(errors) == 1
        assert isinstance(errors[0], RenderAborted)
        assert messages[0]["type"] == "http.response.start"
        body = b"".join(m.get("body", b"") for m in messages[1:])
        assert b"Loading stats" in body
        assert b"_perch_d_" not in body
        assert body.endswith(b"</div></body></html>")

    async def test_buffered_no_body_status(self) -> None:
        messages: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            messages.append(message)

        async def receive() -> dict[str, Any]:
            return {"type": "http.disconnect"}

        await send_response(Response(status=304, body=b"ignored"), send, receive)
        assert (b"content-length", b"0") in messages[0]["headers"]
        assert messages[1]["body"] == b""


class TestLifespan:
    async def test_startup_and_shutdown(self) -> None:
        app = create_asgi_app(create_server({}))
        incoming = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return next(incoming)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent == [{"type": "lifespan.startup.complete"}, {"type": "lifespan.shutdown.complete"}]

    async def test_other_scopes_ignored(self) -> None:
        app = create_asgi_app(create_server({}))
        sent: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "websocket"}, None, send)
        assert sent == []
