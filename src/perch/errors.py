"""Perch exception hierarchy.

Shared across the router, loaders, dispatcher, and renderer so every
module raises and catches the same types.
"""


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when the page table or server setup is invalid.

    Typically raised while compiling routes in ``create_server()``,
    never per request.
    """


class ModuleExportError(PerchError):
    """A loaded module is missing an export the pipeline needs.

    This is a programmer error (a page without a ``template``, a
    document without ``render_head``), kept distinct from data and
    runtime failures raised by hooks.
    """

    def __init__(self, owner: str, export: str) -> None:
        self.owner = owner
        self.export = export
        super().__init__(f"The {owner} module is missing the {export!r} export")


class RenderAborted(PerchError):  # noqa: N818
    """The render was cancelled through its abort signal."""


class HTTPError(PerchError):
    """An error carrying an HTTP status code.

    Hooks may raise these; the default error page reads ``status`` to
    pick the response code instead of a bare 500.
    """

    def __init__(
        self,
        status: int,
        detail: str = "",
        headers: tuple[tuple[str, str], ...] = (),
    ) -> None:
        self.status = status
        self.detail = detail
        self.headers = headers
        super().__init__(status, detail)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — raised by hooks when the requested resource does not exist."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
