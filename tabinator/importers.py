"""
Importers for Tabinator.

All imports merge into the existing library: a URL that is already stored
gets its name and tag set overwritten, new URLs are created. Bad records
are reported in the result and skipped; they never abort an import.
"""
import csv
import io
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup

from tabinator.constants import DEFAULT_MAX_TABS_OPEN, DEFAULT_WARNING_TABS_OPEN
from tabinator.db import Database
from tabinator.rules import Group, RuleError
from tabinator.utils import parse_timestamp, validate_url

logger = logging.getLogger(__name__)

IMPORT_FORMATS = ("tabinator", "csv", "html", "firefox")


@dataclass
class ImportResult:
    """Outcome of one import."""
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    groups: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "updated": self.updated,
            "skipped": self.skipped,
            "groups": self.groups,
            "errors": list(self.errors),
        }


def import_file(db: Database, path: Path, format: Optional[str] = None) -> ImportResult:
    """
    Import links (and, for bundles, groups and settings) from a file.

    Args:
        db: Database instance
        path: File path to import
        format: Format override (auto-detected if not specified)

    Returns:
        ImportResult with per-record counts
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8-sig") as f:
        content = f.read()

    if format is None:
        format = detect_format(path, content)

    return import_string(db, content, format)


def detect_format(path: Path, content: str) -> str:
    """Guess the format from the file extension, peeking into JSON files."""
    ext = Path(path).suffix.lower()
    if ext == ".csv":
        return "csv"
    if ext in (".html", ".htm"):
        return "html"
    if ext == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            raise ValueError(f"Invalid JSON in {path}") from None
        if isinstance(data, dict) and data.get("type") == "text/x-moz-place-container":
            return "firefox"
        return "tabinator"
    raise ValueError(f"Cannot detect import format of {path}; pass a format explicitly")


def import_string(db: Database, content: str, format: str) -> ImportResult:
    """
    Import already-read file content.

    Raises:
        ValueError: If the format is unknown or the content is structurally invalid
    """
    if format == "csv":
        return import_csv(db, content)
    if format == "html":
        return import_html(db, content)
    if format in ("tabinator", "firefox"):
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {e}") from None
        if format == "firefox":
            return import_firefox(db, data)
        return import_data(db, data)

    raise ValueError(f"Unknown format: {format}")


def _import_link(db: Database, result: ImportResult, record: Dict[str, Any], where: str) -> None:
    """Merge one link record into the database, recording the outcome."""
    url = (record.get("url") or "").strip()
    if not url:
        result.skipped += 1
        return
    if not validate_url(url):
        logger.warning("Skipping %s: not an http(s) URL: %s", where, url)
        result.skipped += 1
        return

    try:
        _, created = db.upsert_link(
            url=url,
            name=record.get("name"),
            tags=record.get("tags"),
            created_at=parse_timestamp(record.get("created_at")),
        )
    except ValueError as e:
        logger.warning("Skipping %s: %s", where, e)
        result.errors.append(f"{where}: {e}")
        result.skipped += 1
        return

    if created:
        result.imported += 1
    else:
        result.updated += 1


def _setting(config: Dict[str, Any], key: str, default: int) -> int:
    value = config.get(key)
    return default if value is None else value


def import_data(db: Database, data: Dict[str, Any]) -> ImportResult:
    """
    Import a Tabinator bundle: settings, then groups, then links.

    Groups replace any group of the same name.
    """
    if not isinstance(data, dict):
        raise ValueError("Tabinator export must be a JSON object")

    result = ImportResult()

    config = data.get("config")
    if isinstance(config, dict):
        try:
            db.set_user_config(
                warning_tabs_open=_setting(config, "warning_tabs_open", DEFAULT_WARNING_TABS_OPEN),
                max_tabs_open=_setting(config, "max_tabs_open", DEFAULT_MAX_TABS_OPEN),
            )
        except ValueError as e:
            result.errors.append(f"config: {e}")

    for i, raw in enumerate(data.get("groups") or []):
        where = f"group {i + 1}"
        try:
            db.save_group(Group.from_dict(raw))
        except (ValueError, RuleError) as e:
            logger.warning("Skipping %s: %s", where, e)
            result.errors.append(f"{where}: {e}")
            continue
        result.groups += 1

    for i, record in enumerate(data.get("links") or []):
        if not isinstance(record, dict):
            result.errors.append(f"link {i + 1}: not an object")
            result.skipped += 1
            continue
        _import_link(db, result, record, f"link {i + 1}")

    _log_result("tabinator", result)
    return result


def import_csv(db: Database, content: str) -> ImportResult:
    """
    Import links from CSV.

    The header must contain ``name`` and ``url``; ``tags`` and
    ``created_at`` are optional.
    """
    reader = csv.DictReader(io.StringIO(content))
    fields = {(name or "").strip().lower() for name in (reader.fieldnames or [])}
    if not {"name", "url"} <= fields:
        raise ValueError("CSV must have 'name' and 'url' columns")

    result = ImportResult()
    # Row 1 is the header
    for line, row in enumerate(reader, start=2):
        record = {(k or "").strip().lower(): v for k, v in row.items()}
        _import_link(db, result, record, f"row {line}")

    _log_result("csv", result)
    return result


def import_html(db: Database, content: str) -> ImportResult:
    """Import links from a Netscape bookmark file (every browser's HTML export)."""
    soup = BeautifulSoup(content, "html.parser")

    result = ImportResult()
    for i, anchor in enumerate(soup.find_all("a", href=True)):
        record = {
            "url": anchor.get("href"),
            "name": anchor.get_text(strip=True),
            "tags": anchor.get("tags") or [],
            "created_at": anchor.get("add_date"),
        }
        _import_link(db, result, record, f"bookmark {i + 1}")

    _log_result("html", result)
    return result


def _walk_places(node: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield every bookmark node of a Firefox places tree, depth first."""
    if node.get("type") == "text/x-moz-place" and node.get("uri"):
        yield node
    for child in node.get("children") or []:
        if isinstance(child, dict):
            yield from _walk_places(child)


def import_firefox(db: Database, data: Dict[str, Any]) -> ImportResult:
    """Import links from a Firefox places JSON backup."""
    if not isinstance(data, dict):
        raise ValueError("Firefox export must be a JSON object")

    result = ImportResult()
    for i, node in enumerate(_walk_places(data)):
        record = {
            "url": node.get("uri"),
            "name": node.get("title"),
            "tags": node.get("tags") or [],
            "created_at": node.get("dateAdded"),
        }
        _import_link(db, result, record, f"bookmark {i + 1}")

    _log_result("firefox", result)
    return result


def _log_result(format: str, result: ImportResult) -> None:
    logger.info(
        "Imported %s: %d new, %d updated, %d skipped, %d groups",
        format, result.imported, result.updated, result.skipped, result.groups,
    )
