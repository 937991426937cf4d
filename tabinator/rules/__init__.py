"""
Tabinator group rule engine.

Groups select links with include and exclude blocks:

    include blocks  AND-ed together (a link must match every one)
    exclude blocks  OR-ed together  (matching any one removes the link)
    inside a block  OR across tags, names and urls

Example:
    from tabinator.rules import Group, MatchBlock, filter_links

    work = Group(
        name="Work",
        include=[MatchBlock(tags=["work"])],
        exclude=[MatchBlock(tags=["archive"])],
    )
    for link in filter_links(links, work):
        print(link.url)
"""

from tabinator.rules.core import (
    RuleError,
    RuleType,
    MatchType,
    FlatRule,
    MatchBlock,
    Group,
    LinkRecord,
)

from tabinator.rules.assembler import assemble, flatten

from tabinator.rules.evaluator import (
    block_matches,
    include_matches,
    exclude_matches,
    matches,
    explain,
    MatchExplanation,
)

from tabinator.rules.service import (
    filter_links,
    group_members,
    ungrouped_links,
)

__all__ = [
    "RuleError",
    "RuleType",
    "MatchType",
    "FlatRule",
    "MatchBlock",
    "Group",
    "LinkRecord",
    "assemble",
    "flatten",
    "block_matches",
    "include_matches",
    "exclude_matches",
    "matches",
    "explain",
    "MatchExplanation",
    "filter_links",
    "group_members",
    "ungrouped_links",
]
