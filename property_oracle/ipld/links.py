"""
Link shapes found in property documents.

A value is classified by explicit shape inspection into one of:
- SingleLink: {"/": "<relative path or CID>"}
- LinkArray: a non-empty list of single links (one-to-many relationship)
- RelationshipEdge: {"from": <link>, "to": <link>}

Anything else is plain data.
"""

from dataclasses import dataclass
from typing import Any, Union


DEFAULT_EXCLUDED_SUFFIXES = ("_has_fact_sheet",)


@dataclass(frozen=True)
class SingleLink:
    """A {"/": target} pointer."""

    target: str

    def to_json(self) -> dict[str, str]:
        return {"/": self.target}


@dataclass(frozen=True)
class LinkArray:
    """An ordered list of links."""

    links: tuple[SingleLink, ...]


@dataclass(frozen=True)
class RelationshipEdge:
    """A {"from", "to"} edge between two class documents."""

    from_link: SingleLink | None
    to_link: SingleLink | None


LinkShape = Union[SingleLink, LinkArray, RelationshipEdge]


def as_single_link(value: Any) -> SingleLink | None:
    """Return a SingleLink when value is exactly {"/": <str>}."""
    if isinstance(value, dict) and len(value) == 1 and isinstance(value.get("/"), str):
        return SingleLink(value["/"])
    return None


def classify(value: Any) -> LinkShape | None:
    """
    Classify a JSON value as a link shape.

    Args:
        value: Any JSON value

    Returns:
        SingleLink, LinkArray, RelationshipEdge, or None for plain data

    Examples:
        >>> classify({"/": "./address.json"})
        SingleLink(target='./address.json')
        >>> classify({"from": {"/": "./a.json"}, "to": {"/": "./b.json"}}).to_link
        SingleLink(target='./b.json')
        >>> classify({"street": "Main"}) is None
        True
    """
    single = as_single_link(value)
    if single is not None:
        return single

    if isinstance(value, list) and value:
        links = [as_single_link(item) for item in value]
        if all(link is not None for link in links):
            return LinkArray(tuple(links))
        return None

    if isinstance(value, dict) and set(value) == {"from", "to"}:
        from_value, to_value = value["from"], value["to"]
        from_link = as_single_link(from_value)
        to_link = as_single_link(to_value)
        if (from_link is not None or from_value is None) and (to_link is not None or to_value is None):
            return RelationshipEdge(from_link=from_link, to_link=to_link)

    return None


def is_excluded_relationship(name: str, suffixes: tuple[str, ...] = DEFAULT_EXCLUDED_SUFFIXES) -> bool:
    """True when a relationship name is a side-channel annotation that is not traversed."""
    return any(name.endswith(suffix) for suffix in suffixes)
