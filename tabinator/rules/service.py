"""
Group queries over a link collection.

Stateless helpers that apply the evaluator to many links at once. Input
order is always preserved; nothing here sorts.
"""
from typing import Any, Dict, Iterable, List, Sequence

from tabinator.rules.core import Group
from tabinator.rules.evaluator import matches


def filter_links(links: Iterable[Any], group: Group) -> List[Any]:
    """
    Return the links that belong to a group.

    This is a stable filter: matching links keep their relative order
    from ``links``.
    """
    return [link for link in links if matches(link, group)]


def group_members(links: Sequence[Any], groups: Iterable[Group]) -> Dict[str, List[Any]]:
    """Membership of every group, keyed by group name in group order."""
    links = list(links)
    return {group.name: filter_links(links, group) for group in groups}


def ungrouped_links(links: Iterable[Any], groups: Iterable[Group]) -> List[Any]:
    """Links that belong to none of the given groups."""
    groups = list(groups)
    return [
        link for link in links
        if not any(matches(link, group) for group in groups)
    ]
