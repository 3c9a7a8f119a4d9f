"""Compiled page router with trie-based path matching.

The route table is built once when the server is created and never
mutated afterwards; hot reload replaces the whole matcher.
"""

import re
from collections.abc import Iterable, Iterator

from perch.errors import ConfigurationError
from perch.routing.route import PathSegment, RouteMatch

# [name]: a dynamic segment
_PARAM_RE = re.compile(r"^\[(\w+)\]$")


def parse_key(key: str) -> list[PathSegment]:
    """Parse a page key into segments.

    Examples::

        ""               -> []
        "props"          -> [PathSegment("props")]
        "echo/[param]"   -> [PathSegment("echo"), PathSegment("[param]", True, "param")]
    """
    segments: list[PathSegment] = []
    for part in key.strip("/").split("/"):
        if not part:
            continue
        match = _PARAM_RE.match(part)
        if match:
            segments.append(PathSegment(value=part, is_param=True, param_name=match.group(1)))
        elif "[" in part or "]" in part:
            msg = (
                f"Invalid segment {part!r} in page key {key!r}. "
                "Dynamic segments must span the whole segment, e.g. '[id]'."
            )
            raise ConfigurationError(msg)
        else:
            segments.append(PathSegment(value=part))
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("children", "key", "param_child")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single dynamic child; names live on the key, not the edge
        self.param_child: _TrieNode | None = None
        # Page key terminating at this node
        self.key: str | None = None


class PathMatcher:
    """Immutable matcher produced by ``compile_routes()``.

    Usage::

        matcher = compile_routes(["", "props", "echo/[param]"])
        first = next(matcher("echo/hi"), None)
        # RouteMatch(route_key="echo/[param]", param_names=("param",), param_values=("hi",))
    """

    __slots__ = ("_names", "_root")

    def __init__(self, root: _TrieNode, names: dict[str, tuple[str, ...]]) -> None:
        self._root = root
        self._names = names

    @property
    def keys(self) -> frozenset[str]:
        """All compiled page keys."""
        return frozenset(self._names)

    def __call__(self, pathname: str) -> Iterator[RouteMatch]:
        """Lazily yield every key matching *pathname*, most specific first."""
        parts = [p for p in pathname.split("/") if p]
        for key, values in self._walk(self._root, parts, 0, ()):
            yield RouteMatch(route_key=key, param_names=self._names[key], param_values=values)

    def _walk(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: tuple[str, ...],
    ) -> Iterator[tuple[str, tuple[str, ...]]]:
        if index == len(parts):
            if node.key is not None:
                yield node.key, values
            return

        part = parts[index]

        # 1. Static child first (exact match)
        child = node.children.get(part)
        if child is not None:
            yield from self._walk(child, parts, index + 1, values)

        # 2. Dynamic child
        if node.param_child is not None:
            yield from self._walk(node.param_child, parts, index + 1, (*values, part))


def compile_routes(keys: Iterable[str]) -> PathMatcher:
    """Compile page keys into a ``PathMatcher``.

    Raises ``ConfigurationError`` when two keys have the same shape
    (``"a/[x]"`` and ``"a/[y]"``) or a key repeats a parameter name.
    """
    root = _TrieNode()
    names: dict[str, tuple[str, ...]] = {}

    for key in keys:
        segments = parse_key(key)
        param_names = tuple(seg.param_name for seg in segments if seg.param_name)
        if len(set(param_names)) != len(param_names):
            msg = f"Page key {key!r} repeats a parameter name"
            raise ConfigurationError(msg)

        node = root
        for seg in segments:
            if seg.is_param:
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if node.key is not None:
            msg = f"Page key {key!r} collides with {node.key!r}"
            raise ConfigurationError(msg)
        node.key = key
        names[key] = param_names

    return PathMatcher(root, names)
