"""Perch — streaming server-rendered pages from a table of kida templates.

Each page is a template plus optional server logic. Requests are routed,
dispatched by method, and answered with a lazily rendered body that
streams the document shell first and deferred content after.

Basic usage::

    from perch import Request, create_server

    server = create_server({"": {"view": home}})
    response = await server(Request.build("GET", "/"))
    html = await response.body.text()

Directory sites::

    from perch import load_site
    from perch.adapters.asgi import create_asgi_app

    app = create_asgi_app(load_site("src"))

Multipart forms (``pip install perch[forms]``).
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "DevSite",
    "HTTPError",
    "ModuleExportError",
    "NotFound",
    "PageDefinition",
    "PerchError",
    "RenderAborted",
    "RenderBody",
    "Request",
    "Response",
    "Server",
    "ServerSideContext",
    "ServerSideProps",
    "SiteConfig",
    "StreamOptions",
    "create_server",
    "empty",
    "json",
    "load_site",
    "redirect",
    "to_loader",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("Server", "create_server"):
        from perch.server import factory as _factory

        return getattr(_factory, name)

    if name == "SiteConfig":
        from perch.config import SiteConfig

        return SiteConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "json", "redirect", "empty"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("PageDefinition", "ServerSideContext", "ServerSideProps"):
        from perch.pages import types as _types

        return getattr(_types, name)

    if name in ("RenderBody", "StreamOptions"):
        from perch.rendering import body as _body

        return getattr(_body, name)

    if name == "to_loader":
        from perch.loaders import to_loader

        return to_loader

    if name == "load_site":
        from perch.pages.discovery import load_site

        return load_site

    if name == "DevSite":
        from perch.dev import DevSite

        return DevSite

    if name in (
        "ConfigurationError",
        "HTTPError",
        "ModuleExportError",
        "NotFound",
        "PerchError",
        "RenderAborted",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
