"""RouteKind, UriPattern and RouteMatch."""

from dataclasses import dataclass, field
from enum import Enum


class RouteKind(Enum):
    """What a locator addresses."""

    COLLECTION = "collection"
    SINGLE_ITEM = "single_item"
    UNMATCHED = "unmatched"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a pattern path.

    Static:  ``products``     (is_param=False)
    Typed:   ``{id:int}``     (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class UriPattern:
    """A registered pattern: ``authority`` + ``path`` classifies as ``kind``."""

    authority: str
    path: str
    kind: RouteKind


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of matching a locator. ``kind`` is ``UNMATCHED`` on a miss."""

    kind: RouteKind
    params: dict[str, str | int] = field(default_factory=dict)

    @property
    def matched(self) -> bool:
        return self.kind is not RouteKind.UNMATCHED
