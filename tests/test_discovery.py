"""Tests for filesystem discovery, load_site, and DevSite reloading."""

from pathlib import Path

import pytest

from perch import ConfigurationError, DevSite, Request, SiteConfig, load_site
from perch.pages.discovery import discover

PROPS_SERVER = '''\
def get_server_side_props(ctx):
    return {"props": {"message": "from disk"}}
'''

ECHO_SERVER = '''\
def get_server_side_props(ctx):
    return {"props": {"message": ctx.params["param"]}}
'''

DOCUMENT = '''\
def render_head(*, head="", html_attributes="", body_attributes=""):
    return f"<!doctype html><html><head>{head}</head><body><div id=app>"


def render_tail(*, tail=""):
    return f"</div>{tail}</body></html>"
'''


def _write(root: Path, relative: str, content: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path / "src"
    _write(root, "pages/index.html", "<h1>Home</h1>")
    _write(root, "pages/index.head.html", "<title>Home</title>")
    _write(root, "pages/props/index.html", "<p>{{ message }}</p>")
    _write(root, "pages/props/index.py", PROPS_SERVER)
    _write(root, "pages/echo/[param]/index.html", "<p>{{ message }}</p>")
    _write(root, "pages/echo/[param]/index.py", ECHO_SERVER)
    _write(root, "_app.html", "<main>{{ content }}</main>")
    return root


async def _get_text(server, path: str) -> tuple[int, str]:
    response = await server(Request.build("GET", path))
    return response.status, await response.body.text()


class TestDiscover:
    def test_pages(self, site: Path) -> None:
        files = discover(site)
        pages = {page.key: page for page in files.pages}
        assert set(pages) == {"", "props", "echo/[param]"}
        assert pages[""].head == Path("pages/index.head.html")
        assert pages[""].server is None
        assert pages["props"].server == Path("pages/props/index.py")
        assert pages["echo/[param]"].template == Path("pages/echo/[param]/index.html")

    def test_special_files(self, site: Path) -> None:
        _write(site, "_404.html", "<p>gone</p>")
        _write(site, "_error.html", "<p>oops</p>")
        _write(site, "_error.py", "")
        files = discover(site)
        assert files.app == Path("_app.html")
        assert files.document is None
        assert files.not_found.template == Path("_404.html")
        assert files.error.server == Path("_error.py")

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            discover(tmp_path / "nope")

    def test_signature_tracks_files(self, site: Path) -> None:
        before = discover(site).signature()
        assert discover(site).signature() == before
        _write(site, "pages/new/index.html", "<p>new</p>")
        assert discover(site).signature() != before


class TestLoadSite:
    async def test_serves_pages(self, site: Path) -> None:
        server = load_site(site)
        status, text = await _get_text(server, "/")
        assert status == 200
        assert "<title>Home</title>" in text
        assert "<main><h1>Home</h1></main>" in text

    async def test_server_logic_file(self, site: Path) -> None:
        _, text = await _get_text(load_site(site), "/props")
        assert "<p>from disk</p>" in text

    async def test_dynamic_segment(self, site: Path) -> None:
        _, text = await _get_text(load_site(site), "/echo/caf%C3%A9")
        assert "<p>café</p>" in text

    async def test_custom_not_found(self, site: Path) -> None:
        _write(site, "_404.html", "<p>gone</p>")
        status, text = await _get_text(load_site(site), "/missing")
        assert status == 404
        assert "<p>gone</p>" in text
        assert "<main>" not in text

    async def test_error_template_uses_default_logic(self, site: Path) -> None:
        _write(site, "_error.html", "<p>oops {{ status }}</p>")
        _write(site, "pages/broken/index.html", "<p>broken</p>")
        _write(site, "pages/broken/index.py", "def get_server_side_props(ctx):\n    raise RuntimeError('x')\n")
        status, text = await _get_text(load_site(site), "/broken")
        assert status == 500
        assert "<p>oops 500</p>" in text

    async def test_custom_document(self, site: Path) -> None:
        _write(site, "_document.py", DOCUMENT)
        _, text = await _get_text(load_site(site), "/")
        assert "<div id=app>" in text

    def test_invalid_key(self, site: Path) -> None:
        _write(site, "pages/bad[x]/index.html", "<p>bad</p>")
        with pytest.raises(ConfigurationError):
            load_site(site)


class TestDevSite:
    def test_debug_by_default(self, site: Path) -> None:
        assert DevSite(site).config.debug is True
        assert DevSite(site, SiteConfig(debug=False)).config.debug is False

    async def test_picks_up_new_pages(self, site: Path) -> None:
        dev = DevSite(site)
        status, _ = await _get_text(dev, "/new")
        assert status == 404

        _write(site, "pages/new/index.html", "<p>fresh</p>")
        status, text = await _get_text(dev, "/new")
        assert status == 200
        assert "<p>fresh</p>" in text

    async def test_picks_up_removed_pages(self, site: Path) -> None:
        dev = DevSite(site)
        (site / "pages/props/index.py").unlink()
        (site / "pages/props/index.html").unlink()
        status, _ = await _get_text(dev, "/props")
        assert status == 404

    def test_refresh_reports_changes(self, site: Path) -> None:
        dev = DevSite(site)
        assert dev.refresh() is False
        _write(site, "pages/new/index.html", "<p>fresh</p>")
        assert dev.refresh() is True
        assert dev.refresh() is False
        assert "new" in dev.server.table.pages

    async def test_server_logic_reloaded(self, site: Path) -> None:
        dev = DevSite(site)
        _, text = await _get_text(dev, "/props")
        assert "<p>from disk</p>" in text
        _write(site, "pages/props/index.py", PROPS_SERVER.replace("from disk", "edited"))
        _, text = await _get_text(dev, "/props")
        assert "<p>edited</p>" in text
