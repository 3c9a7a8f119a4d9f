"""Server factory — the composition root.

``create_server()`` binds a page table to a configuration and returns a
``Server``: an async ``Request -> Response`` callable.

    server = create_server(
        {"": {"view": home}, "echo/[param]": {"view": echo, "server": echo_server}},
        config=SiteConfig(debug=True),
    )
    response = await server(Request.build("GET", "/echo/hi"))
"""

from collections.abc import Mapping
from typing import Any

from perch.config import SiteConfig
from perch.http.request import Request
from perch.http.response import Response
from perch.server.dispatch import dispatch, recover
from perch.server.table import PageInput, PageTable


class Server:
    """Dispatches requests against an immutable page table.

    ``replace()`` swaps the whole table in one assignment, so a request
    never observes a half-updated route set.
    """

    __slots__ = ("_table", "config")

    def __init__(self, table: PageTable, config: SiteConfig) -> None:
        self._table = table
        self.config = config

    @property
    def table(self) -> PageTable:
        return self._table

    async def __call__(self, request: Request, context: Any = None) -> Response:
        return await dispatch(self._table, self.config, request, context)

    async def recover(self, request: Request, error: BaseException, context: Any = None) -> Response:
        """Render the error page for *error* directly.

        Used by transports when acquiring a body fails before the shell
        was ready. Errors raised here are not recovered.
        """
        return await recover(self._table, self.config, request, error, context)

    def replace(
        self,
        pages: Mapping[str, PageInput],
        *,
        not_found: PageInput | None = None,
        error: PageInput | None = None,
        app: Any = None,
        document: Any = None,
    ) -> None:
        """Build a new page table and swap it in."""
        self._table = PageTable.build(
            pages,
            not_found=not_found,
            error=error,
            app=app,
            document=document,
            config=self.config,
        )


def create_server(
    pages: Mapping[str, PageInput],
    *,
    not_found: PageInput | None = None,
    error: PageInput | None = None,
    app: Any = None,
    document: Any = None,
    config: SiteConfig | None = None,
) -> Server:
    """Create a server from a mapping of page keys to page definitions.

    Omitted overrides fall back to the built-in not-found page, error
    page, app template, and document.

    Raises ``ConfigurationError`` if the page keys collide.
    """
    config = config or SiteConfig()
    table = PageTable.build(
        pages,
        not_found=not_found,
        error=error,
        app=app,
        document=document,
        config=config,
    )
    return Server(table, config)
