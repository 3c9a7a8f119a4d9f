"""Route, RouteMatch and PathSegment frozen dataclasses."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

NOT_FOUND_KEY = "_404"
ERROR_KEY = "_error"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route key.

    Static:  ``users``    (is_param=False)
    Param:   ``[id]``     (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """One candidate produced by the matcher, before decoding."""

    route_key: str
    param_names: tuple[str, ...]
    param_values: tuple[str, ...]


def _empty_params() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Route:
    """The route a request resolved to.

    ``params`` holds decoded captures in path order and is read-only.
    """

    key: str
    params: Mapping[str, str] = field(default_factory=_empty_params)

    @classmethod
    def from_match(cls, match: RouteMatch) -> "Route":
        """Decode a matcher candidate into a Route."""
        from perch.routing.params import decode_param

        params = {
            name: decode_param(value)
            for name, value in zip(match.param_names, match.param_values, strict=True)
        }
        return cls(key=match.route_key, params=MappingProxyType(params))

    @property
    def is_not_found(self) -> bool:
        return self.key == NOT_FOUND_KEY

    @property
    def is_error(self) -> bool:
        return self.key == ERROR_KEY
