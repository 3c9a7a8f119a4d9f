"""Dispatch policy table.

Every branch of request handling is selected here from four facts
about the request, so each outcome can be reasoned about (and tested)
on its own. Custom ``on_request`` handlers run before this table and
reach it through ``next()``.
"""

from collections.abc import Iterable
from enum import Enum, StrEnum


class RouteKind(StrEnum):
    NORMAL = "normal"
    NOT_FOUND = "not_found"
    ERROR = "error"


class Policy(Enum):
    RENDER_WRAPPED = "render_wrapped"  # 200, page inside the app template
    RENDER_NOT_FOUND = "render_not_found"  # 404, page alone
    RENDER_STANDALONE = "render_standalone"  # 500, error page alone
    FORM_SUBMIT = "form_submit"  # run the form handler, then RENDER_WRAPPED
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"  # 415, no body
    METHOD_NOT_ALLOWED = "method_not_allowed"  # 405 with Allow


def select_policy(
    kind: RouteKind,
    method: str,
    has_form_handler: bool,
    is_form_content: bool,
) -> Policy:
    """Pick the policy for a request.

    ``method`` must already be upper-cased.
    """
    match (kind, method, has_form_handler, is_form_content):
        case (RouteKind.ERROR, _, _, _):
            return Policy.RENDER_STANDALONE
        case (RouteKind.NOT_FOUND, "GET", _, _):
            return Policy.RENDER_NOT_FOUND
        case (RouteKind.NORMAL, "GET", _, _):
            return Policy.RENDER_WRAPPED
        case (RouteKind.NORMAL, "POST", True, True):
            return Policy.FORM_SUBMIT
        case (RouteKind.NORMAL, "POST", True, False):
            return Policy.UNSUPPORTED_MEDIA_TYPE
        case _:
            return Policy.METHOD_NOT_ALLOWED


def allowed_methods(has_form_handler: bool, custom_methods: Iterable[str]) -> str:
    """The ``Allow`` header for a page: GET, POST with a form handler, then custom methods."""
    methods = ["GET"]
    if has_form_handler:
        methods.append("POST")
    for method in custom_methods:
        if method not in methods:
            methods.append(method)
    return ", ".join(methods)
