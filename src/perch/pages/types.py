"""Page data model: definitions, per-request context, hook results."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from perch.http.request import Request
from perch.loaders import Loader, to_loader

_PAGE_FIELDS = frozenset({"view", "server", "scripts", "css"})
_PROPS_FIELDS = frozenset({"props", "status", "redirect_url", "hydrate", "headers"})


@dataclass(frozen=True, slots=True)
class PageDefinition:
    """A registered page: module loaders plus client asset URLs.

    ``view`` loads the module exposing ``template`` (and optionally
    ``head``). ``server`` loads the optional server-logic module with
    ``get_server_side_props``, ``on_submit`` and ``on_request`` hooks.
    """

    view: Loader[Any]
    server: Loader[Any] | None = None
    scripts: tuple[str, ...] = ()
    css: tuple[str, ...] = ()

    @classmethod
    def coerce(cls, value: "PageDefinition | Mapping[str, Any]") -> "PageDefinition":
        """Build a PageDefinition from a mapping of plain values.

        ``view`` and ``server`` may be modules, awaitables, or factories;
        they go through ``to_loader``.
        """
        if isinstance(value, PageDefinition):
            return value
        unknown = set(value) - _PAGE_FIELDS
        if unknown:
            msg = f"Unknown page definition keys: {', '.join(sorted(unknown))}"
            raise TypeError(msg)
        if value.get("view") is None:
            msg = "A page definition requires a 'view'"
            raise TypeError(msg)
        server = value.get("server")
        return cls(
            view=to_loader(value["view"]),
            server=to_loader(server) if server is not None else None,
            scripts=tuple(value.get("scripts", ())),
            css=tuple(value.get("css", ())),
        )


@dataclass(slots=True)
class ServerSideContext:
    """Per-request context handed to every server-logic hook.

    Created once per request by the dispatcher. ``form_data`` is set
    only after a form handler ran; ``error`` only during error recovery.
    ``cache`` is a per-request dict also passed to the app template.
    """

    route_key: str
    request: Request
    params: Mapping[str, str]
    context: Any = None
    cache: dict[str, Any] = field(default_factory=dict)
    form_data: Any = None
    error: BaseException | None = None


@dataclass(frozen=True, slots=True)
class ServerSideProps:
    """Result of ``get_server_side_props``.

    A non-empty ``redirect_url`` short-circuits rendering: no view is
    rendered and ``props`` never reach a template.
    """

    props: Mapping[str, Any] = field(default_factory=dict)
    status: int | None = None
    redirect_url: str | None = None
    hydrate: bool = True
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def coerce(cls, value: Any) -> "ServerSideProps":
        """Accept a ServerSideProps, a mapping with the same keys, or None."""
        if value is None:
            return cls()
        if isinstance(value, ServerSideProps):
            return value
        if isinstance(value, Mapping):
            unknown = set(value) - _PROPS_FIELDS
            if unknown:
                msg = f"Unknown server side props keys: {', '.join(sorted(unknown))}"
                raise TypeError(msg)
            data = dict(value)
            headers = data.pop("headers", ())
            if isinstance(headers, Mapping):
                headers = headers.items()
            return cls(headers=tuple(headers), **data)
        msg = f"get_server_side_props must return ServerSideProps, a mapping or None, got {type(value).__name__}"
        raise TypeError(msg)
