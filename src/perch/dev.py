"""Development site: re-discovers pages on every request.

When the set of discovered files changes (a page added, moved, or
deleted) the server's page table is rebuilt and swapped in whole.
Edits to existing files are picked up by the debug-mode loaders:
kida reloads templates and server modules are re-executed.
"""

import logging
from pathlib import Path
from typing import Any

from perch.config import SiteConfig
from perch.http.request import Request
from perch.http.response import Response
from perch.pages.discovery import SiteFiles, discover, site_environment, site_pages
from perch.server.factory import Server, create_server

logger = logging.getLogger("perch.dev")


class DevSite:
    """A ``Server``-compatible callable over a live source directory.

    Usage::

        site = DevSite("src")
        app = create_asgi_app(site)
    """

    __slots__ = ("_env", "_files", "config", "server")

    def __init__(self, src_dir: str | Path, config: SiteConfig | None = None) -> None:
        self.config = config or SiteConfig(debug=True)
        self._files: SiteFiles = discover(src_dir)
        self._env = site_environment(self._files.root, self.config)
        self.server: Server = create_server(
            **site_pages(self._files, self._env, self.config), config=self.config
        )
        logger.info("Serving %d pages from %s", len(self._files.pages), self._files.root)

    @property
    def files(self) -> SiteFiles:
        return self._files

    def refresh(self) -> bool:
        """Re-discover the source tree; swap the page table if it changed."""
        files = discover(self._files.root)
        if files.signature() == self._files.signature():
            return False
        kwargs = site_pages(files, self._env, self.config)
        self.server.replace(
            kwargs["pages"],
            not_found=kwargs["not_found"],
            error=kwargs["error"],
            app=kwargs["app"],
            document=kwargs["document"],
        )
        self._files = files
        logger.info("Page table changed, reloaded %d pages", len(files.pages))
        return True

    async def __call__(self, request: Request, context: Any = None) -> Response:
        self.refresh()
        return await self.server(request, context)

    async def recover(self, request: Request, error: BaseException, context: Any = None) -> Response:
        return await self.server.recover(request, error, context)
