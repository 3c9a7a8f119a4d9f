"""Default document module: the HTML around every rendered page.

A document module exposes two pure functions. ``render_head`` returns
everything up to and including the page element opening tag;
``render_tail`` closes it. Sites replace them with a ``_document.py``.
"""

import html
from collections.abc import Mapping
from typing import Any

PAGE_ELEMENT_ID = "__SITE__"


def render_head(
    *,
    head: str = "",
    html_attributes: str = "",
    body_attributes: str = "",
    page_element_id: str = PAGE_ELEMENT_ID,
) -> str:
    return (
        f"<!doctype html><html{html_attributes}><head>{head}</head>"
        f"<body{body_attributes}><div id={page_element_id}>"
    )


def render_tail(*, tail: str = "") -> str:
    return f"</div>{tail}</body></html>"


def format_attributes(attributes: Mapping[str, Any] | str | None) -> str:
    """Render attributes as ``' name="value"'`` pairs.

    ``True`` renders a bare attribute; ``None`` and ``False`` are
    skipped. Strings are assumed to be pre-rendered.

        format_attributes({"lang": "en", "hidden": True})
        -> ' lang="en" hidden'
    """
    if not attributes:
        return ""
    if isinstance(attributes, str):
        return attributes if attributes.startswith(" ") else f" {attributes}"
    parts: list[str] = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {html.escape(name, quote=True)}")
        else:
            parts.append(f' {html.escape(name, quote=True)}="{html.escape(str(value), quote=True)}"')
    return "".join(parts)
