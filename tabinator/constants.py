"""
Constants for Tabinator.

Limits mirror the validation rules enforced on every write path.
Some are also available via the config system.
"""

# Link limits
MAX_NAME_LENGTH = 500
MAX_URL_LENGTH = 2000
MAX_TAG_LENGTH = 100
MAX_TAGS_PER_LINK = 50
ALLOWED_URL_SCHEMES = ("http", "https")
DEFAULT_LINK_NAME = "Untitled"

# Group limits
MAX_GROUP_NAME_LENGTH = 100
MAX_RULES_PER_GROUP = 2000

# User config defaults
DEFAULT_WARNING_TABS_OPEN = 20
DEFAULT_MAX_TABS_OPEN = 50

# Export
EXPORT_VERSION = "1.0"
HTML_EXPORT_FORMATS = ("chrome", "edge", "safari", "opera", "netscape")
