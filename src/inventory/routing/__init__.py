"""Routing — classify resource locators into route kinds.

Patterns are compiled once into an immutable trie; classification is a
pure function of the locator.
"""

from inventory.routing.matcher import DEFAULT_MATCHER, Matcher, classify, inventory_patterns
from inventory.routing.route import RouteKind, RouteMatch, UriPattern

__all__ = [
    "DEFAULT_MATCHER",
    "Matcher",
    "RouteKind",
    "RouteMatch",
    "UriPattern",
    "classify",
    "inventory_patterns",
]
