"""
Exporters for Tabinator.

Every format renders the whole library; only the ``tabinator`` bundle
carries groups and settings, the browser formats carry links only.
"""
import csv
import html
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from tabinator.config import get_config
from tabinator.constants import EXPORT_VERSION, HTML_EXPORT_FORMATS
from tabinator.db import Database
from tabinator.models import Link
from tabinator.utils import format_timestamp

EXPORT_FORMATS = ("tabinator", "csv", "firefox") + HTML_EXPORT_FORMATS


def export_file(db: Database, path: Path, format: str) -> None:
    """
    Export the library to a file.

    Args:
        db: Database instance
        path: Output file path
        format: One of EXPORT_FORMATS
    """
    content = export_to_string(db, format)

    # Ensure parent directory exists
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def export_to_string(db: Database, format: str) -> str:
    """
    Render the library in an export format.

    Raises:
        ValueError: If the format is unknown
    """
    if format == "tabinator":
        return export_tabinator(db)

    links = db.list_links(order_by="name")
    if format == "csv":
        return export_csv(links)
    if format == "firefox":
        return export_firefox(links)
    if format in HTML_EXPORT_FORMATS:
        return export_html(links)

    raise ValueError(f"Unknown format: {format}")


def export_tabinator(db: Database) -> str:
    """Full JSON bundle: settings, groups and links."""
    data = {
        "version": EXPORT_VERSION,
        "exported_at": format_timestamp(datetime.now(timezone.utc)),
        **db.data(),
    }
    indent = 2 if get_config().export_pretty else None
    return json.dumps(data, indent=indent, ensure_ascii=False)


def export_csv(links: List[Link]) -> str:
    """CSV with one row per link; tags joined by commas."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["name", "url", "tags", "created_at", "updated_at"])

    for link in links:
        writer.writerow([
            link.name,
            link.url,
            ",".join(link.tag_names),
            format_timestamp(link.created_at) or "",
            format_timestamp(link.updated_at) or "",
        ])

    return buffer.getvalue()


def _epoch(value, scale: int = 1) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * scale)


def export_firefox(links: List[Link]) -> str:
    """Firefox places JSON (the format of Firefox's own JSON backup)."""
    now = _epoch(datetime.now(timezone.utc), 1000)
    children = []
    for position, link in enumerate(links, start=1):
        children.append({
            "title": link.name,
            "id": position,
            "dateAdded": _epoch(link.created_at, 1000),
            "lastModified": _epoch(link.updated_at, 1000),
            "type": "text/x-moz-place",
            "uri": link.url,
            "tags": ",".join(link.tag_names),
        })

    root = {
        "title": "",
        "id": 0,
        "dateAdded": now,
        "lastModified": now,
        "type": "text/x-moz-place-container",
        "root": "placesRoot",
        "children": children,
    }
    indent = 2 if get_config().export_pretty else None
    return json.dumps(root, indent=indent, ensure_ascii=False)


def export_html(links: List[Link]) -> str:
    """Export links to Netscape HTML format (browser-compatible)."""
    lines = [
        '<!DOCTYPE NETSCAPE-Bookmark-file-1>',
        '<!-- This is an automatically generated file. It will be read and overwritten. DO NOT EDIT! -->',
        '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
        '<TITLE>Bookmarks</TITLE>',
        '<H1>Bookmarks</H1>',
        '<DL><p>',
    ]

    for link in links:
        attrs = f'HREF="{html.escape(link.url)}" ADD_DATE="{_epoch(link.created_at)}"'
        if link.tags:
            attrs += f' TAGS="{html.escape(",".join(link.tag_names))}"'
        lines.append(f'    <DT><A {attrs}>{html.escape(link.name)}</A>')

    lines.append('</DL><p>')
    return "\n".join(lines) + "\n"
