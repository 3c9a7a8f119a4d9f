"""Built-in page modules used when a site does not override them.

The not-found, error, and app modules are backed by templates shipped
in ``perch/templates``; the document module is ``perch.document``.
"""

import functools
import traceback
from types import SimpleNamespace
from typing import Any

from kida import Environment, PackageLoader

from perch import document
from perch.config import SiteConfig
from perch.errors import HTTPError
from perch.pages.types import ServerSideContext, ServerSideProps


@functools.cache
def builtin_environment() -> Environment:
    """The kida environment for perch's own templates (created once)."""
    return Environment(loader=PackageLoader("perch", "templates"), autoescape=True)


def not_found_view_module() -> SimpleNamespace:
    env = builtin_environment()
    return SimpleNamespace(
        template=env.get_template("_404.html"),
        head=env.get_template("_404.head.html"),
    )


def error_view_module() -> SimpleNamespace:
    env = builtin_environment()
    return SimpleNamespace(
        template=env.get_template("_error.html"),
        head=env.get_template("_error.head.html"),
    )


def error_server_module(debug: bool = False) -> SimpleNamespace:
    """Server logic for the default error page.

    The stack trace is only exposed to the template in debug mode.
    """
    return SimpleNamespace(
        get_server_side_props=functools.partial(error_server_side_props, debug=debug),
    )


def app_module() -> SimpleNamespace:
    return SimpleNamespace(template=builtin_environment().get_template("_app.html"))


def document_module(config: SiteConfig) -> SimpleNamespace:
    return SimpleNamespace(
        render_head=functools.partial(
            document.render_head, page_element_id=config.page_element_id
        ),
        render_tail=document.render_tail,
    )


# -- Error page server logic --


def error_server_side_props(ctx: ServerSideContext, *, debug: bool = False) -> ServerSideProps:
    error = ctx.error
    status = error_status(error)
    props: dict[str, Any] = {"status": status, "stack": error_stack(error) if debug else None}
    headers = error.headers if isinstance(error, HTTPError) else ()
    return ServerSideProps(props=props, status=status, headers=headers)


def error_status(error: Any) -> int:
    """The HTTP status carried by *error* (``status`` or ``status_code``), else 500."""
    for name in ("status", "status_code"):
        value = getattr(error, name, None)
        if isinstance(value, int) and not isinstance(value, bool) and value:
            return value
    return 500


def error_stack(error: Any) -> str:
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(error))
    return f"Non-error value raised: {error!r}"
