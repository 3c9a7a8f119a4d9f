"""Filesystem page discovery.

Walks a site source directory and maps it to a page table::

    src/
      _app.html               # app template, wraps every page ({{ content }})
      _document.py            # render_head() / render_tail()
      _404.html  _404.py      # not-found page (+ optional server logic)
      _error.html  _error.py  # error page (+ optional server logic)
      pages/
        index.html            # ""
        index.head.html       # extra <head> markup for ""
        index.py              # server logic for ""
        props/index.html      # "props"
        echo/[param]/index.html   # "echo/[param]"

Templates are loaded through a kida ``FileSystemLoader`` rooted at the
source directory. Server logic files are executed as modules.
"""

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from kida import Environment, FileSystemLoader

from perch.config import SiteConfig
from perch.errors import ConfigurationError
from perch.loaders import Loader, file_loader, to_loader
from perch.pages import defaults
from perch.pages.types import PageDefinition
from perch.server.factory import Server, create_server

PAGES_DIR = "pages"
PAGE_TEMPLATE = "index.html"
PAGE_HEAD = "index.head.html"
PAGE_SERVER = "index.py"


@dataclass(frozen=True, slots=True)
class PageFiles:
    """The files behind one page. Paths are relative to the source root."""

    key: str
    template: Path
    head: Path | None = None
    server: Path | None = None


@dataclass(frozen=True, slots=True)
class SiteFiles:
    root: Path
    pages: tuple[PageFiles, ...] = ()
    app: Path | None = None
    document: Path | None = None
    not_found: PageFiles | None = None
    error: PageFiles | None = None

    def signature(self) -> tuple[str, ...]:
        """Every discovered path, sorted. Changes when files are added or removed."""
        paths: list[Path] = []
        for page in (*self.pages, self.not_found, self.error):
            if page is not None:
                paths.extend(p for p in (page.template, page.head, page.server) if p is not None)
        paths.extend(p for p in (self.app, self.document) if p is not None)
        return tuple(sorted(p.as_posix() for p in paths))


def _optional(root: Path, relative: Path) -> Path | None:
    return relative if (root / relative).is_file() else None


def _special_page(root: Path, name: str) -> PageFiles | None:
    template = _optional(root, Path(f"{name}.html"))
    if template is None:
        return None
    return PageFiles(
        key=name,
        template=template,
        head=_optional(root, Path(f"{name}.head.html")),
        server=_optional(root, Path(f"{name}.py")),
    )


def discover(src_dir: str | Path) -> SiteFiles:
    """Discover the pages and special files under *src_dir*."""
    root = Path(src_dir)
    if not root.is_dir():
        msg = f"Site source directory not found: {root}"
        raise ConfigurationError(msg)

    pages: list[PageFiles] = []
    pages_dir = root / PAGES_DIR
    if pages_dir.is_dir():
        for template in sorted(pages_dir.rglob(PAGE_TEMPLATE)):
            directory = template.parent.relative_to(root)
            key = "/".join(directory.relative_to(PAGES_DIR).parts)
            pages.append(
                PageFiles(
                    key=key,
                    template=template.relative_to(root),
                    head=_optional(root, directory / PAGE_HEAD),
                    server=_optional(root, directory / PAGE_SERVER),
                )
            )

    return SiteFiles(
        root=root,
        pages=tuple(pages),
        app=_optional(root, Path("_app.html")),
        document=_optional(root, Path("_document.py")),
        not_found=_special_page(root, "_404"),
        error=_special_page(root, "_error"),
    )


def site_environment(root: Path, config: SiteConfig) -> Environment:
    """A kida environment over the site sources; reloads templates in debug."""
    return Environment(
        loader=FileSystemLoader(str(root)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
    )


def _view_loader(env: Environment, page: PageFiles) -> Loader[Any]:
    def load() -> SimpleNamespace:
        return SimpleNamespace(
            template=env.get_template(page.template.as_posix()),
            head=env.get_template(page.head.as_posix()) if page.head is not None else None,
        )

    return to_loader(load)


def _page_definition(
    files: SiteFiles,
    env: Environment,
    page: PageFiles,
    config: SiteConfig,
    *,
    fallback_server: Any = None,
) -> PageDefinition:
    if page.server is not None:
        server = file_loader(files.root / page.server, reload=config.debug)
    elif fallback_server is not None:
        server = to_loader(fallback_server)
    else:
        server = None
    return PageDefinition(view=_view_loader(env, page), server=server)


def site_pages(files: SiteFiles, env: Environment, config: SiteConfig) -> dict[str, Any]:
    """Keyword arguments for ``create_server()`` / ``Server.replace()``."""
    pages = {page.key: _page_definition(files, env, page, config) for page in files.pages}

    not_found = (
        _page_definition(files, env, files.not_found, config) if files.not_found is not None else None
    )
    error = (
        _page_definition(
            files,
            env,
            files.error,
            config,
            fallback_server=defaults.error_server_module(config.debug),
        )
        if files.error is not None
        else None
    )

    app: Any = None
    if files.app is not None:
        app_name = files.app.as_posix()

        def load_app() -> SimpleNamespace:
            return SimpleNamespace(template=env.get_template(app_name))

        app = load_app

    document = None
    if files.document is not None:
        document = file_loader(files.root / files.document, reload=config.debug)

    return {"pages": pages, "not_found": not_found, "error": error, "app": app, "document": document}


def load_site(src_dir: str | Path, config: SiteConfig | None = None) -> Server:
    """Build a Server from the files under *src_dir*."""
    config = config or SiteConfig()
    files = discover(src_dir)
    env = site_environment(files.root, config)
    return create_server(**site_pages(files, env, config), config=config)
