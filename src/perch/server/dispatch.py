"""Request dispatcher — route, load, dispatch, render, recover.

    Routing -> ModuleLoading -> Dispatching -> Rendering -> Responding
                   \\______________ ErrorRecovery ______________/

Routing never fails: no match means the not-found page. Any exception
after routing is logged and handed to ErrorRecovery, which renders the
error page with ``ctx.error`` set. An exception inside ErrorRecovery
propagates to the caller.
"""

import dataclasses
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from perch._internal.concurrency import gather
from perch._internal.invoke import invoke
from perch.config import SiteConfig
from perch.document import format_attributes
from perch.errors import ModuleExportError
from perch.http.forms import is_form_content_type
from perch.http.request import Request
from perch.http.response import Response, empty, html, redirect
from perch.pages.types import PageDefinition, ServerSideContext, ServerSideProps
from perch.rendering.body import DocumentContext, RenderBody
from perch.rendering.hydration import page_data
from perch.rendering.view import View
from perch.routing import ERROR_KEY, NOT_FOUND_KEY, Route
from perch.server.policy import Policy, RouteKind, allowed_methods, select_policy
from perch.server.table import PageTable

logger = logging.getLogger("perch.server")

_NO_PARAMS: Mapping[str, str] = MappingProxyType({})


def export(module: Any, name: str, default: Any = None) -> Any:
    """Read *name* from a module, namespace, or mapping."""
    if isinstance(module, Mapping):
        return module.get(name, default)
    return getattr(module, name, default)


def require(module: Any, name: str, owner: str) -> Any:
    value = export(module, name)
    if value is None:
        raise ModuleExportError(owner, name)
    return value


@dataclass(frozen=True, slots=True)
class ServerHooks:
    """The hooks a server-logic module exposes."""

    get_server_side_props: Callable[..., Any] | None = None
    on_submit: Callable[..., Any] | None = None
    on_request: Mapping[str, Callable[..., Any]] = field(default_factory=dict)

    @classmethod
    def from_module(cls, module: Any) -> "ServerHooks":
        on_request = export(module, "on_request") or {}
        return cls(
            get_server_side_props=export(module, "get_server_side_props"),
            on_submit=export(module, "on_submit"),
            on_request={method.upper(): handler for method, handler in on_request.items()},
        )


@dataclass(frozen=True, slots=True)
class LoadedModules:
    view: Any
    server: Any
    app: Any
    document: Any


def _owner(route_key: str) -> str:
    if route_key in (NOT_FOUND_KEY, ERROR_KEY):
        return route_key
    return f"page {route_key!r}"


def route_kind(route: Route) -> RouteKind:
    if route.is_error:
        return RouteKind.ERROR
    if route.is_not_found:
        return RouteKind.NOT_FOUND
    return RouteKind.NORMAL


async def _no_app() -> None:
    return None


async def load_modules(table: PageTable, definition: PageDefinition, kind: RouteKind) -> LoadedModules:
    """Load view, server logic, app, and document concurrently.

    Standalone routes (not-found, error) never load the app module.
    """
    app_loader = table.app if kind is RouteKind.NORMAL else _no_app
    view, server, app, document = await gather(
        definition.view,
        table.server_loader(definition),
        app_loader,
        table.document,
    )
    return LoadedModules(view=view, server=server if server is not None else {}, app=app, document=document)


async def dispatch(
    table: PageTable,
    config: SiteConfig,
    request: Request,
    context: Any = None,
) -> Response:
    """Handle one request against *table*."""
    # Routing
    route = table.match(request.pathname)
    if route.is_not_found:
        logger.debug("No page matches %s", request.pathname)

    ctx = ServerSideContext(
        route_key=route.key,
        request=request,
        params=route.params,
        context=context,
    )
    try:
        return await _handle(table, config, route, ctx)
    except Exception as exc:
        logger.exception("Error handling %s %s", request.method, request.pathname)
        return await recover(table, config, request, exc, context, previous=ctx)


async def recover(
    table: PageTable,
    config: SiteConfig,
    request: Request,
    error: BaseException,
    context: Any = None,
    *,
    previous: ServerSideContext | None = None,
) -> Response:
    """Render the error page for *error*. Exceptions here propagate."""
    route = Route(key=ERROR_KEY)
    if previous is not None:
        ctx = dataclasses.replace(previous, route_key=ERROR_KEY, params=_NO_PARAMS, error=error)
    else:
        ctx = ServerSideContext(
            route_key=ERROR_KEY,
            request=request,
            params=_NO_PARAMS,
            context=context,
            error=error,
        )
    return await _handle(table, config, route, ctx)


async def _handle(
    table: PageTable,
    config: SiteConfig,
    route: Route,
    ctx: ServerSideContext,
) -> Response:
    kind = route_kind(route)
    definition = table.definition(route)

    # ModuleLoading
    modules = await load_modules(table, definition, kind)
    hooks = ServerHooks.from_module(modules.server)
    method = ctx.request.method.upper()

    async def next_() -> Response:
        return await _apply_policy(kind, method, route, ctx, modules, hooks, definition, config)

    # Dispatching: custom handlers go first, except while recovering
    handler = hooks.on_request.get(method)
    if handler is not None and kind is not RouteKind.ERROR:
        return await invoke(handler, ctx, next_)
    return await next_()


async def _apply_policy(
    kind: RouteKind,
    method: str,
    route: Route,
    ctx: ServerSideContext,
    modules: LoadedModules,
    hooks: ServerHooks,
    definition: PageDefinition,
    config: SiteConfig,
) -> Response:
    has_form_handler = hooks.on_submit is not None
    is_form = is_form_content_type(ctx.request.content_type, multipart=config.form_multipart)
    policy = select_policy(kind, method, has_form_handler, is_form)

    match policy:
        case Policy.METHOD_NOT_ALLOWED:
            allow = allowed_methods(has_form_handler, hooks.on_request)
            logger.debug("%s not allowed on %r (allow: %s)", method, route.key, allow)
            return empty(405, (("allow", allow),))
        case Policy.UNSUPPORTED_MEDIA_TYPE:
            logger.debug("Unsupported form content type %r on %r", ctx.request.content_type, route.key)
            return empty(415)
        case Policy.FORM_SUBMIT:
            ctx.form_data = await invoke(hooks.on_submit, ctx)
            return await render_page(route, ctx, modules, hooks, definition, config, wrapped=True, status=200)
        case Policy.RENDER_WRAPPED:
            return await render_page(route, ctx, modules, hooks, definition, config, wrapped=True, status=200)
        case Policy.RENDER_NOT_FOUND:
            return await render_page(route, ctx, modules, hooks, definition, config, wrapped=False, status=404)
        case Policy.RENDER_STANDALONE:
            return await render_page(route, ctx, modules, hooks, definition, config, wrapped=False, status=500)


async def render_page(
    route: Route,
    ctx: ServerSideContext,
    modules: LoadedModules,
    hooks: ServerHooks,
    definition: PageDefinition,
    config: SiteConfig,
    *,
    wrapped: bool,
    status: int,
) -> Response:
    """Run ``get_server_side_props`` and build the lazily rendered response.

    A redirect skips rendering entirely and never exposes props.
    """
    template = require(modules.view, "template", _owner(route.key))
    render_head = require(modules.document, "render_head", "_document")
    render_tail = require(modules.document, "render_tail", "_document")
    wrapper = require(modules.app, "template", "_app") if wrapped else None

    result: Any = None
    if hooks.get_server_side_props is not None:
        result = await invoke(hooks.get_server_side_props, ctx)
    props = ServerSideProps.coerce(result)

    if props.redirect_url:
        response = redirect(
            props.redirect_url,
            props.status if props.status is not None else config.redirect_status,
        )
        return response.with_headers(props.headers)

    view_context = {**props.props, "params": ctx.params, "form_data": ctx.form_data}
    hydrated_props = {k: v for k, v in props.props.items() if not inspect.isawaitable(v)}
    view = View(
        template=template,
        context=view_context,
        wrapper=wrapper,
        wrapper_context={"cache": ctx.cache},
    )
    document = DocumentContext(
        render_head=render_head,
        render_tail=render_tail,
        head=export(modules.view, "head"),
        html_attributes=format_attributes(export(modules.view, "html_attributes")),
        body_attributes=format_attributes(export(modules.view, "body_attributes")),
        scripts=definition.scripts,
        css=definition.css,
        page_data=page_data(hydrated_props, ctx.form_data),
        hydrate=props.hydrate,
        data_global=config.page_data_global,
    )
    response = html(
        RenderBody(view, document),
        status=props.status if props.status is not None else status,
    )
    return response.with_headers(props.headers)
