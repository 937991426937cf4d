"""
Tabinator - rule-based link groups

Stores links (name, URL, tags) and groups whose membership is computed
from rules rather than stored.

Design Principles:
- A group is ordered include and exclude blocks of exact match values
- Every include block must match; any matching exclude block removes the link
- Rules are stored as flat tuples and reassembled on read
- Single database file (tabinator.db) via SQLAlchemy

Example Usage:
    >>> from tabinator import Database, Group, MatchBlock
    >>> db = Database("tabinator.db")
    >>> db.add_link("https://example.com", name="Example", tags=["work"])
    >>> db.create_group(Group("Work", include=[MatchBlock(tags=["work"])]))
    >>> db.group_links("Work")
"""

__version__ = "0.3.0"
__author__ = "Tabinator Contributors"

# Core database API
from tabinator.db import Database, get_db

# Configuration
from tabinator.config import TabinatorConfig, get_config, init_config

# Rule engine
from tabinator.rules import (
    Group,
    MatchBlock,
    RuleError,
    assemble,
    flatten,
    filter_links,
    matches,
)

# Import/Export
from tabinator.importers import import_file, ImportResult
from tabinator.exporters import export_file

__all__ = [
    # Database
    "Database",
    "get_db",
    # Config
    "TabinatorConfig",
    "get_config",
    "init_config",
    # Rules
    "Group",
    "MatchBlock",
    "RuleError",
    "assemble",
    "flatten",
    "filter_links",
    "matches",
    # Import/Export
    "import_file",
    "ImportResult",
    "export_file",
]
