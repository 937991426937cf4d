"""
Conversion between flat rule tuples and nested groups.

Storage keeps one row per match value:

    (rule_type, match_type, match_value, block_index)

``assemble`` rebuilds the ordered include/exclude block sequences from
those rows and ``flatten`` produces them from a group.
"""
import logging
from typing import Any, Dict, Iterable, List, Tuple

from tabinator.constants import MAX_RULES_PER_GROUP
from tabinator.rules.core import (
    FlatRule,
    Group,
    MatchBlock,
    MatchType,
    RuleError,
    RuleType,
)

logger = logging.getLogger(__name__)


def assemble(
    rules: Iterable[Any],
    name: str = "",
    max_rules: int = MAX_RULES_PER_GROUP,
) -> Group:
    """
    Rebuild a group from its flat rule tuples.

    Rules are bucketed by ``(rule_type, block_index)``; buckets are emitted
    in ascending block index order, so gaps in the stored indexes simply
    disappear. Input order does not matter except for the order of values
    inside a block, which follows first appearance.

    Args:
        rules: FlatRule instances, mappings or row-like objects
        name: Name for the resulting group
        max_rules: Upper bound on the number of tuples accepted

    Returns:
        The assembled Group

    Raises:
        RuleError: If a tuple is malformed or there are too many of them
    """
    buckets: Dict[Tuple[RuleType, int], Dict[MatchType, List[str]]] = {}
    count = 0

    for raw in rules:
        count += 1
        if count > max_rules:
            raise RuleError(f"Group '{name}' has more than {max_rules} rules")

        rule = FlatRule.coerce(raw)
        block = buckets.setdefault(rule.block_key, {m: [] for m in MatchType})
        block[rule.match_type].append(rule.match_value)

    include: List[MatchBlock] = []
    exclude: List[MatchBlock] = []
    for rule_type, block_index in sorted(buckets, key=lambda key: key[1]):
        values = buckets[(rule_type, block_index)]
        block = MatchBlock(
            tags=values[MatchType.TAGS],
            names=values[MatchType.NAMES],
            urls=values[MatchType.URLS],
        )
        target = include if rule_type is RuleType.INCLUDE else exclude
        target.append(block)

    logger.debug(
        "Assembled group '%s': %d rules into %d include and %d exclude blocks",
        name, count, len(include), len(exclude),
    )
    return Group(name=name, include=include, exclude=exclude)


def flatten(group: Group) -> List[FlatRule]:
    """
    Turn a group into flat rule tuples.

    Block indexes are dense positions within each sequence. Empty blocks
    produce no tuples and do not consume an index, so
    ``assemble(flatten(g), g.name) == g.compacted()``.
    """
    rules: List[FlatRule] = []
    for rule_type in RuleType:
        non_empty = [b for b in group.blocks(rule_type) if not b.is_empty]
        for block_index, block in enumerate(non_empty):
            for match_type in MatchType:
                for value in block.values(match_type):
                    rules.append(FlatRule(rule_type, match_type, value, block_index))
    return rules
