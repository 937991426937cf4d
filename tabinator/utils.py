"""
Input validation and normalization helpers shared by the write paths.
"""
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union
from urllib.parse import urlparse

from tabinator.constants import (
    ALLOWED_URL_SCHEMES,
    MAX_GROUP_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TAG_LENGTH,
    MAX_TAGS_PER_LINK,
    MAX_URL_LENGTH,
)

_ANGLE_BRACKETS = re.compile(r"[<>]")


def validate_url(url: str) -> bool:
    """
    Check that a URL is absolute http(s).

    Args:
        url: URL to check

    Returns:
        True if the URL has an http or https scheme and a host
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ALLOWED_URL_SCHEMES and bool(parsed.netloc)


def clean_url(url: str) -> str:
    """
    Trim and validate a link URL.

    Raises:
        ValueError: If the URL is missing, too long or not http(s)
    """
    if not isinstance(url, str) or not url.strip():
        raise ValueError("URL is required")
    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise ValueError(f"URL must be less than {MAX_URL_LENGTH} characters")
    if not validate_url(url):
        raise ValueError(f"Invalid URL format: {url}")
    return url


def clean_name(name: Optional[str], default: Optional[str] = None, truncate: bool = False) -> str:
    """
    Sanitize a link name: strip angle brackets and surrounding whitespace.

    Args:
        name: Raw name
        default: Returned when the name is empty; if None, empty names raise
        truncate: Cut long names to the maximum length instead of raising

    Raises:
        ValueError: If the name is empty and no default is given, or too long
    """
    name = _ANGLE_BRACKETS.sub("", name or "").strip()
    if not name:
        if default is None:
            raise ValueError("Name is required")
        return default
    if truncate:
        return name[:MAX_NAME_LENGTH].rstrip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Name must be less than {MAX_NAME_LENGTH} characters")
    return name


def clean_group_name(name: Optional[str]) -> str:
    """Validate a group name (required, at most 100 characters)."""
    name = (name or "").strip()
    if not name:
        raise ValueError("Group name is required")
    if len(name) > MAX_GROUP_NAME_LENGTH:
        raise ValueError(f"Group name must be less than {MAX_GROUP_NAME_LENGTH} characters")
    return name


def parse_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """
    Accept tags as a list or as a comma-separated string.

    Returns the raw, unvalidated list.
    """
    if not tags:
        return []
    if isinstance(tags, str):
        return [t.strip() for t in tags.split(",") if t.strip()]
    return list(tags)


def clean_tags(tags: Union[str, Iterable[str], None], truncate: bool = False) -> List[str]:
    """
    Normalize a tag list for storage.

    Tags are trimmed and truncated to 100 characters; empty tags are
    dropped and duplicates removed (first occurrence wins). With
    ``truncate``, tags past the fiftieth are dropped instead of raising.

    Raises:
        ValueError: If there are more than 50 tags or a tag is not a string
    """
    raw = parse_tags(tags)
    if len(raw) > MAX_TAGS_PER_LINK and not truncate:
        raise ValueError(f"Maximum {MAX_TAGS_PER_LINK} tags allowed")

    cleaned = []
    for tag in raw:
        if not isinstance(tag, str):
            raise ValueError(f"Each tag must be a string, got {tag!r}")
        tag = tag.strip()[:MAX_TAG_LENGTH]
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned[:MAX_TAGS_PER_LINK]


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 string for a stored timestamp (naive values are UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a timestamp from an export.

    Accepts ISO 8601 strings, SQLite's ``YYYY-MM-DD HH:MM:SS`` and epoch
    seconds, milliseconds or microseconds. Returns None for anything unparseable.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        seconds = float(value)
        while seconds > 1e11:  # milliseconds or microseconds
            seconds /= 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
