"""Hydration bootstrap: page data serialization and script tags.

Serialized page data is embedded inside an inline ``<script>``. The
JSON is escaped so that no substring of the data can close the script
element or open an HTML comment: ``<``, ``>``, ``&`` and the two
JavaScript line terminators become ``\\uXXXX`` escapes.
"""

import html
import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

_SCRIPT_UNSAFE_RE = re.compile("[<>&\u2028\u2029]")


def _escape_char(match: re.Match[str]) -> str:
    return f"\\u{ord(match.group()):04x}"


def _json_default(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def serialize_page_data(data: Any) -> str:
    """JSON-encode *data* for safe embedding in an inline script.

    >>> serialize_page_data({"html": "</script>"})
    '{"html":"\\\\u003c/script\\\\u003e"}'
    """
    payload = json.dumps(data, separators=(",", ":"), default=_json_default)
    return _SCRIPT_UNSAFE_RE.sub(_escape_char, payload)


def page_data(props: Mapping[str, Any], form_data: Any = None) -> dict[str, Any]:
    """The hydration payload read by client scripts."""
    return {"props": dict(props), "formData": form_data}


def bootstrap_data_script(data: Any, global_name: str = "__SITE_DATA__") -> str:
    """JavaScript assigning the page data to ``window.<global_name>``."""
    return f"window.{global_name}={serialize_page_data(data)}"


def bootstrap_scripts(urls: Iterable[str], data_script: str | None = None) -> list[str]:
    """Script tags appended after the page content.

    The inline data script comes first so module scripts can read it.
    """
    tags: list[str] = []
    if data_script:
        tags.append(f"<script>{data_script}</script>")
    tags.extend(
        f'<script type="module" src="{html.escape(url, quote=True)}"></script>' for url in urls
    )
    return tags
