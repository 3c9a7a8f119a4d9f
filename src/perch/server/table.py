"""The page table: compiled routes plus every module loader a request may need.

Built once per server (and once per dev reload). Never mutated: a
reload builds a new table and swaps it in a single assignment.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType, SimpleNamespace
from typing import Any

from perch.config import SiteConfig
from perch.errors import ConfigurationError
from perch.loaders import Loader, memoize, to_loader
from perch.pages import defaults
from perch.pages.types import PageDefinition
from perch.routing import ERROR_KEY, NOT_FOUND_KEY, PathMatcher, Route, compile_routes

PageInput = PageDefinition | Mapping[str, Any]


async def _empty_module() -> SimpleNamespace:
    return SimpleNamespace()


@dataclass(frozen=True, slots=True)
class PageTable:
    matcher: PathMatcher
    pages: Mapping[str, PageDefinition]
    not_found: PageDefinition
    error: PageDefinition
    app: Loader[Any]
    document: Loader[Any]

    @classmethod
    def build(
        cls,
        pages: Mapping[str, PageInput],
        *,
        not_found: PageInput | None = None,
        error: PageInput | None = None,
        app: Any = None,
        document: Any = None,
        config: SiteConfig,
    ) -> "PageTable":
        """Normalize user input and fall back to the built-in modules.

        Raises ``ConfigurationError`` for colliding or reserved keys.
        """
        definitions: dict[str, PageDefinition] = {}
        for key, value in pages.items():
            normalized = key.strip("/")
            if normalized in (NOT_FOUND_KEY, ERROR_KEY):
                msg = f"Page key {key!r} is reserved; pass it as not_found= or error= instead"
                raise ConfigurationError(msg)
            if normalized in definitions:
                msg = f"Page key {key!r} is registered twice"
                raise ConfigurationError(msg)
            try:
                definitions[normalized] = PageDefinition.coerce(value)
            except TypeError as exc:
                msg = f"Invalid page definition for {key!r}: {exc}"
                raise ConfigurationError(msg) from exc

        if not_found is None:
            not_found_page = PageDefinition(view=memoize(to_loader(defaults.not_found_view_module)))
        else:
            not_found_page = PageDefinition.coerce(not_found)

        if error is None:
            error_page = PageDefinition(
                view=memoize(to_loader(defaults.error_view_module)),
                server=to_loader(defaults.error_server_module(config.debug)),
            )
        else:
            error_page = PageDefinition.coerce(error)

        app_loader = memoize(to_loader(defaults.app_module)) if app is None else to_loader(app)
        document_loader = (
            to_loader(defaults.document_module(config)) if document is None else to_loader(document)
        )

        return cls(
            matcher=compile_routes(definitions),
            pages=MappingProxyType(definitions),
            not_found=not_found_page,
            error=error_page,
            app=app_loader,
            document=document_loader,
        )

    def match(self, pathname: str) -> Route:
        """Resolve *pathname* to a Route; never fails.

        Only the first (most specific) candidate is consumed.
        """
        candidate = next(self.matcher(pathname.lstrip("/")), None)
        if candidate is None:
            return Route(key=NOT_FOUND_KEY)
        return Route.from_match(candidate)

    def definition(self, route: Route) -> PageDefinition:
        if route.key == NOT_FOUND_KEY:
            return self.not_found
        if route.key == ERROR_KEY:
            return self.error
        return self.pages[route.key]

    @staticmethod
    def server_loader(definition: PageDefinition) -> Loader[Any]:
        return definition.server if definition.server is not None else _empty_module
