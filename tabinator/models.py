"""
SQLAlchemy models for Tabinator.

One database holds one user's library: links, the tags attached to them,
rule-based groups and display settings.
"""
from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Table, Index,
    CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column

from tabinator.constants import (
    MAX_GROUP_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TAG_LENGTH,
    MAX_URL_LENGTH,
    DEFAULT_WARNING_TABS_OPEN,
    DEFAULT_MAX_TABS_OPEN,
)
from tabinator.utils import format_timestamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Association table for many-to-many relationship between links and tags
link_tags = Table(
    'link_tags',
    Base.metadata,
    Column('link_id', Integer, ForeignKey('links.id', ondelete='CASCADE'), primary_key=True),
    Column('tag_id', Integer, ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
    Index('ix_link_tags_link_id', 'link_id'),
    Index('ix_link_tags_tag_id', 'tag_id')
)


class Link(Base):
    """
    A saved URL with a display name and tags.

    The URL is the identity of a link: it is unique and is what updates
    and deletes address.

    ``sort_order`` is a manual position kept for clients that reorder
    links by hand. Tabinator itself never reads or writes it; listings
    order by id, name or timestamps.
    """
    __tablename__ = 'links'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False)
    url: Mapped[str] = mapped_column(String(MAX_URL_LENGTH), nullable=False, unique=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary=link_tags,
        back_populates="links",
        lazy="selectin",
        order_by="Tag.name"
    )

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]

    def to_dict(self) -> dict:
        """Serialize in the shape used by the data bundle and exports."""
        return {
            "name": self.name,
            "url": self.url,
            "tags": self.tag_names,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    def __repr__(self):
        return f"<Link(id={self.id}, name='{self.name[:50]}', url='{self.url[:50]}')>"


class Tag(Base):
    """
    Tag attached to links.

    Tags are created on first use and are not removed when their last link
    goes away.
    """
    __tablename__ = 'tags'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(MAX_TAG_LENGTH), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    links: Mapped[List["Link"]] = relationship(
        "Link",
        secondary=link_tags,
        back_populates="tags",
        lazy="dynamic"
    )

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"


class Group(Base):
    """
    A named group whose membership is defined by rules.

    Rules are always replaced as a whole; see GroupRule.
    """
    __tablename__ = 'groups'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(MAX_GROUP_NAME_LENGTH), unique=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    rules: Mapped[List["GroupRule"]] = relationship(
        "GroupRule",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="GroupRule.id"
    )

    def __repr__(self):
        return f"<Group(id={self.id}, name='{self.name}')>"


class GroupRule(Base):
    """
    One flat rule tuple of a group.

    ``block_index`` is the position of the block within its include or
    exclude sequence; rows sharing ``(rule_type, block_index)`` form one
    block.
    """
    __tablename__ = 'group_rules'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('groups.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    rule_type: Mapped[str] = mapped_column(String(16), nullable=False)
    match_type: Mapped[str] = mapped_column(String(16), nullable=False)
    match_value: Mapped[str] = mapped_column(Text, nullable=False)
    block_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    group: Mapped["Group"] = relationship("Group", back_populates="rules")

    __table_args__ = (
        CheckConstraint("rule_type IN ('include', 'exclude')", name='ck_group_rules_rule_type'),
        CheckConstraint("match_type IN ('tags', 'names', 'urls')", name='ck_group_rules_match_type'),
        CheckConstraint("block_index >= 0", name='ck_group_rules_block_index'),
    )

    def __repr__(self):
        return (
            f"<GroupRule(group_id={self.group_id}, {self.rule_type}[{self.block_index}] "
            f"{self.match_type}='{self.match_value}')>"
        )


class UserConfig(Base):
    """Display settings shared with the browser extension. Single row."""
    __tablename__ = 'user_config'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    warning_tabs_open: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_WARNING_TABS_OPEN)
    max_tabs_open: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_TABS_OPEN)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    def to_dict(self) -> dict:
        return {
            "warning_tabs_open": self.warning_tabs_open,
            "max_tabs_open": self.max_tabs_open,
        }

    def __repr__(self):
        return f"<UserConfig(warning={self.warning_tabs_open}, max={self.max_tabs_open})>"
