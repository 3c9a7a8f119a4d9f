"""Routing — page keys compiled into an immutable trie.

Keys are directory-style page paths (``""``, ``"props"``,
``"echo/[param]"``). Matching yields candidates lazily, static
segments before dynamic ones.
"""

from perch.routing.params import decode_param
from perch.routing.route import ERROR_KEY, NOT_FOUND_KEY, PathSegment, Route, RouteMatch
from perch.routing.router import PathMatcher, compile_routes, parse_key

__all__ = [
    "ERROR_KEY",
    "NOT_FOUND_KEY",
    "PathMatcher",
    "PathSegment",
    "Route",
    "RouteMatch",
    "compile_routes",
    "decode_param",
    "parse_key",
]
