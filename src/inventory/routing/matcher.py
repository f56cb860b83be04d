"""Locator matcher with trie-based path matching.

Patterns are data: a tuple of ``UriPattern`` entries compiled once into an
immutable lookup structure. Matching is a pure function of the locator.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from inventory.contract import CONTENT_AUTHORITY, PATH_PRODUCTS, SCHEME
from inventory.errors import ConfigurationError
from inventory.locator import Locator
from inventory.routing.params import CONVERTERS, convert_param
from inventory.routing.route import PathSegment, RouteKind, RouteMatch, UriPattern


def parse_pattern(path: str) -> list[PathSegment]:
    """Parse a pattern path string into segments.

    Examples::

        "products"          -> [PathSegment("products")]
        "products/{id:int}" -> [PathSegment("products"),
                                PathSegment("{id:int}", is_param=True, param_type="int")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown converter {param_type!r} in pattern {path!r}"
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


class _TrieNode:
    """A node in the pattern trie. Mutable during compilation only."""

    __slots__ = ("children", "kind", "param_child")

    def __init__(self) -> None:
        # Static segment children: "products" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Kind registered at this node, if a pattern ends here
        self.kind: RouteKind | None = None


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


class Matcher:
    """Classify locators against a fixed set of patterns.

    Usage::

        matcher = Matcher([
            UriPattern("com.example.android.inventoryapp", "products", RouteKind.COLLECTION),
            UriPattern("com.example.android.inventoryapp", "products/{id:int}",
                       RouteKind.SINGLE_ITEM),
        ])
        matcher.classify("content://com.example.android.inventoryapp/products/7")
        # RouteKind.SINGLE_ITEM
    """

    __slots__ = ("_patterns", "_roots", "_scheme")

    def __init__(self, patterns: Iterable[UriPattern], *, scheme: str = SCHEME) -> None:
        self._scheme = scheme
        self._patterns = tuple(patterns)
        self._roots: dict[str, _TrieNode] = {}
        for pattern in self._patterns:
            self._add(pattern)

    def _add(self, pattern: UriPattern) -> None:
        if pattern.kind is RouteKind.UNMATCHED:
            msg = f"Cannot register a pattern as UNMATCHED: {pattern.path!r}"
            raise ConfigurationError(msg)

        node = self._roots.setdefault(pattern.authority, _TrieNode())
        for seg in parse_pattern(pattern.path):
            if seg.is_param:
                if node.param_child is None:
                    regex, _ = CONVERTERS[seg.param_type]
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        param_type=seg.param_type,
                        regex=re.compile(f"^{regex}$"),
                        node=_TrieNode(),
                    )
                elif (node.param_child.param_name, node.param_child.param_type) != (
                    seg.param_name,
                    seg.param_type,
                ):
                    msg = f"Conflicting parameter {seg.value!r} in pattern {pattern.path!r}"
                    raise ConfigurationError(msg)
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if node.kind is not None and node.kind is not pattern.kind:
            msg = f"Pattern {pattern.path!r} is already registered as {node.kind.name}"
            raise ConfigurationError(msg)
        node.kind = pattern.kind

    @property
    def patterns(self) -> tuple[UriPattern, ...]:
        return self._patterns

    def match(self, locator: Locator | str) -> RouteMatch:
        """Match a locator. Returns an ``UNMATCHED`` result on a miss; never raises."""
        if isinstance(locator, str):
            try:
                locator = Locator.parse(locator)
            except ValueError:
                return RouteMatch(kind=RouteKind.UNMATCHED)

        if locator.scheme != self._scheme:
            return RouteMatch(kind=RouteKind.UNMATCHED)
        root = self._roots.get(locator.authority)
        if root is None:
            return RouteMatch(kind=RouteKind.UNMATCHED)

        result = self._match_node(root, locator.segments, 0, {})
        if result is None:
            return RouteMatch(kind=RouteKind.UNMATCHED)
        kind, params = result
        return RouteMatch(kind=kind, params=params)

    def classify(self, locator: Locator | str) -> RouteKind:
        """Return the route kind of *locator*."""
        return self.match(locator).kind

    def _match_node(
        self,
        node: _TrieNode,
        parts: tuple[str, ...],
        index: int,
        params: dict[str, str | int],
    ) -> tuple[RouteKind, dict[str, str | int]] | None:
        """Recursively match path parts against the trie."""
        if index == len(parts):
            if node.kind is not None:
                return node.kind, params
            return None

        part = parts[index]

        # Static child first (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, params)
            if result is not None:
                return result

        if node.param_child is not None:
            edge = node.param_child
            if edge.regex.match(part):
                new_params = {**params, edge.param_name: convert_param(part, edge.param_type)}
                return self._match_node(edge.node, parts, index + 1, new_params)

        return None


def inventory_patterns(
    authority: str = CONTENT_AUTHORITY, path: str = PATH_PRODUCTS
) -> tuple[UriPattern, ...]:
    """The two patterns the provider serves: the collection and one item in it."""
    return (
        UriPattern(authority, path, RouteKind.COLLECTION),
        UriPattern(authority, f"{path}/{{id:int}}", RouteKind.SINGLE_ITEM),
    )


DEFAULT_MATCHER = Matcher(inventory_patterns())


def classify(locator: Locator | str) -> RouteKind:
    """Classify *locator* against the default inventory patterns."""
    return DEFAULT_MATCHER.classify(locator)
