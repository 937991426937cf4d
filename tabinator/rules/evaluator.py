"""
Group membership evaluation.

    block matches   = any tag shared OR name equal OR url equal
    include matches = AND over include blocks (True when there are none)
    exclude matches = OR over exclude blocks (False when there are none)
    matches         = include matches AND NOT exclude matches

A block with no values matches every link. Comparisons are exact and
case-sensitive; there is no substring or pattern matching.

All functions are pure and accept LinkRecord instances, ORM Link objects
(tags as Tag objects) or plain dicts.
"""
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, FrozenSet, Tuple

from tabinator.rules.core import Group, MatchBlock


def _tag_names(tags: Any) -> FrozenSet[str]:
    if not tags:
        return frozenset()
    if isinstance(tags, str):
        return frozenset(t.strip() for t in tags.split(",") if t.strip())
    return frozenset(t if isinstance(t, str) else t.name for t in tags)


def link_fields(link: Any) -> Tuple[str, str, FrozenSet[str]]:
    """Extract ``(name, url, tag names)`` from any supported link shape."""
    if isinstance(link, Mapping):
        return link.get("name") or "", link.get("url") or "", _tag_names(link.get("tags"))
    return link.name, link.url, _tag_names(link.tags)


def _block_matches(name: str, url: str, tags: FrozenSet[str], block: MatchBlock) -> bool:
    if block.is_empty:
        return True
    return (
        any(tag in tags for tag in block.tags)
        or name in block.names
        or url in block.urls
    )


def block_matches(link: Any, block: MatchBlock) -> bool:
    """Test a link against a single block."""
    return _block_matches(*link_fields(link), block)


def include_matches(link: Any, group: Group) -> bool:
    """True when every include block matches the link."""
    fields = link_fields(link)
    return all(_block_matches(*fields, block) for block in group.include)


def exclude_matches(link: Any, group: Group) -> bool:
    """True when any exclude block matches the link."""
    fields = link_fields(link)
    return any(_block_matches(*fields, block) for block in group.exclude)


def matches(link: Any, group: Group) -> bool:
    """Decide whether a link belongs to a group."""
    fields = link_fields(link)
    if not all(_block_matches(*fields, block) for block in group.include):
        return False
    return not any(_block_matches(*fields, block) for block in group.exclude)


@dataclass(frozen=True)
class MatchExplanation:
    """Per-block results behind a membership decision."""
    include: Tuple[bool, ...]
    exclude: Tuple[bool, ...]

    @property
    def included(self) -> bool:
        return all(self.include)

    @property
    def excluded(self) -> bool:
        return any(self.exclude)

    @property
    def matches(self) -> bool:
        return self.included and not self.excluded


def explain(link: Any, group: Group) -> MatchExplanation:
    """
    Evaluate every block of a group against a link.

    Unlike ``matches`` this does not short-circuit, so the result shows
    which include blocks failed and which exclude blocks fired.
    """
    fields = link_fields(link)
    return MatchExplanation(
        include=tuple(_block_matches(*fields, block) for block in group.include),
        exclude=tuple(_block_matches(*fields, block) for block in group.exclude),
    )
