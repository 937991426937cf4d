"""
Core types for the group rule engine.

A group is defined by two ordered sequences of match blocks:

- include blocks are combined with AND (every block must match)
- exclude blocks are combined with OR (any matching block excludes)

Each block holds three independent sets of match values (tags, names,
urls) and matches a link when any one of them does.

Groups are persisted as flat ``(rule_type, match_type, match_value,
block_index)`` tuples. ``FlatRule`` is the validated form of such a tuple;
``tabinator.rules.assembler`` converts between the two shapes.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from collections.abc import Iterable, Mapping
from typing import Any, Dict, FrozenSet, Optional, Tuple


class RuleError(Exception):
    """Raised when a rule tuple or group definition is malformed."""
    pass


class RuleType(str, Enum):
    """Whether a block restricts (include) or disqualifies (exclude)."""
    INCLUDE = "include"
    EXCLUDE = "exclude"


class MatchType(str, Enum):
    """Which link field a match value is compared against."""
    TAGS = "tags"
    NAMES = "names"
    URLS = "urls"


def _parse_enum(enum_cls, value: Any, what: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise RuleError(f"Unknown {what}: {value!r}") from None


def _normalize_values(values: Any, field_name: str) -> Tuple[str, ...]:
    """
    Normalize a collection of match values.

    None becomes empty, values are trimmed, empty values are dropped and
    duplicates collapse while keeping first-seen order.
    """
    if values is None:
        return ()
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise RuleError(f"'{field_name}' must be a list of strings, got {type(values).__name__}")

    seen = {}
    for value in values:
        if not isinstance(value, str):
            raise RuleError(f"'{field_name}' values must be strings, got {value!r}")
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True)
class FlatRule:
    """
    One stored rule tuple.

    Construction validates every field, so an instance is always well
    formed: known rule and match types, a non-negative integer block index
    and a non-empty trimmed match value.
    """
    rule_type: RuleType
    match_type: MatchType
    match_value: str
    block_index: int

    def __post_init__(self):
        object.__setattr__(self, "rule_type", _parse_enum(RuleType, self.rule_type, "rule type"))
        object.__setattr__(self, "match_type", _parse_enum(MatchType, self.match_type, "match type"))

        index = self.block_index
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise RuleError(f"Invalid block index: {index!r}")

        value = self.match_value
        if not isinstance(value, str) or not value.strip():
            raise RuleError(f"Match value must be a non-empty string, got {value!r}")
        object.__setattr__(self, "match_value", value.strip())

    @property
    def block_key(self) -> Tuple[RuleType, int]:
        """Composite key identifying the block this rule belongs to."""
        return (self.rule_type, self.block_index)

    @classmethod
    def coerce(cls, obj: Any) -> "FlatRule":
        """
        Build a FlatRule from a FlatRule, a mapping or a row-like object.

        Row-like objects (ORM rows, named tuples) must expose ``rule_type``,
        ``match_type``, ``match_value`` and ``block_index`` attributes.
        """
        if isinstance(obj, cls):
            return obj

        fields = ("rule_type", "match_type", "match_value", "block_index")
        if isinstance(obj, Mapping):
            missing = [f for f in fields if f not in obj]
            if missing:
                raise RuleError(f"Rule is missing fields: {', '.join(missing)}")
            return cls(*(obj[f] for f in fields))

        try:
            return cls(*(getattr(obj, f) for f in fields))
        except AttributeError as e:
            raise RuleError(f"Not a rule: {obj!r}") from e


@dataclass(frozen=True)
class MatchBlock:
    """
    A set of tag, name and URL match values combined with OR.

    Values keep their first-seen order so that blocks survive an
    edit/save or export/import cycle unchanged. A block with no values at
    all matches every link.
    """
    tags: Tuple[str, ...] = ()
    names: Tuple[str, ...] = ()
    urls: Tuple[str, ...] = ()

    def __post_init__(self):
        for match_type in MatchType:
            name = match_type.value
            object.__setattr__(self, name, _normalize_values(getattr(self, name), name))

    @property
    def is_empty(self) -> bool:
        return not (self.tags or self.names or self.urls)

    @property
    def rule_count(self) -> int:
        return len(self.tags) + len(self.names) + len(self.urls)

    def values(self, match_type: MatchType) -> Tuple[str, ...]:
        """Get the match values for one match type."""
        return getattr(self, MatchType(match_type).value)

    def to_dict(self) -> Dict[str, list]:
        """Serialize with all three keys always present."""
        return {
            "tags": list(self.tags),
            "names": list(self.names),
            "urls": list(self.urls),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MatchBlock":
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise RuleError(f"Block must be an object, got {type(data).__name__}")
        return cls(
            tags=data.get("tags"),
            names=data.get("names"),
            urls=data.get("urls"),
        )


def _normalize_blocks(blocks: Any, field_name: str) -> Tuple[MatchBlock, ...]:
    if blocks is None:
        return ()
    if isinstance(blocks, (str, bytes, Mapping)) or not isinstance(blocks, Iterable):
        raise RuleError(f"'{field_name}' must be a list of blocks, got {type(blocks).__name__}")
    return tuple(MatchBlock.from_dict(block) for block in blocks)


@dataclass(frozen=True)
class Group:
    """
    A named, rule-based view over links.

    ``include`` and ``exclude`` keep insertion order; evaluation does not
    depend on it, but display and block indexes in storage do.

    Example:
        Group(
            name="Work",
            include=[MatchBlock(tags=["work"])],
            exclude=[MatchBlock(tags=["archive"]), MatchBlock(names=["Draft"])],
        )
        # links tagged "work", unless tagged "archive" or named "Draft"
    """
    name: str = ""
    include: Tuple[MatchBlock, ...] = ()
    exclude: Tuple[MatchBlock, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "include", _normalize_blocks(self.include, "include"))
        object.__setattr__(self, "exclude", _normalize_blocks(self.exclude, "exclude"))

    @property
    def rule_count(self) -> int:
        """Number of flat rule tuples needed to store this group."""
        return sum(block.rule_count for block in self.include + self.exclude)

    @property
    def is_unrestricted(self) -> bool:
        """True when the group has no blocks and so matches every link."""
        return not self.include and not self.exclude

    def blocks(self, rule_type: RuleType) -> Tuple[MatchBlock, ...]:
        if RuleType(rule_type) is RuleType.INCLUDE:
            return self.include
        return self.exclude

    def compacted(self) -> "Group":
        """
        Copy of this group without empty blocks.

        An empty block has no rule tuples, so this is the form a group
        takes once it has been stored and read back.
        """
        return Group(
            name=self.name,
            include=[b for b in self.include if not b.is_empty],
            exclude=[b for b in self.exclude if not b.is_empty],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "include": [block.to_dict() for block in self.include],
            "exclude": [block.to_dict() for block in self.exclude],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Group":
        if not isinstance(data, Mapping):
            raise RuleError(f"Group must be an object, got {type(data).__name__}")
        name = data.get("name") or ""
        if not isinstance(name, str):
            raise RuleError(f"Group name must be a string, got {name!r}")
        return cls(
            name=name.strip(),
            include=data.get("include"),
            exclude=data.get("exclude"),
        )


@dataclass(frozen=True)
class LinkRecord:
    """
    The rule engine's view of a link.

    The evaluator also accepts ORM ``Link`` objects and plain dicts, so
    this is mostly useful for callers working outside the database.
    """
    name: str
    url: str
    tags: FrozenSet[str] = frozenset()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "tags", frozenset(self.tags or ()))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LinkRecord":
        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]
        return cls(name=data.get("name") or "", url=data.get("url") or "", tags=frozenset(tags))
