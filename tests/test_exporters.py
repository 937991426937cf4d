"""
Tests for tabinator/exporters.py
"""
import csv
import io
import json

import pytest
from bs4 import BeautifulSoup

from tabinator.exporters import EXPORT_FORMATS, export_file, export_to_string


class TestTabinatorExport:
    """Test the JSON bundle export."""

    def test_bundle_shape(self, populated_db):
        """Test that the bundle carries version, config, groups and links."""
        data = json.loads(export_to_string(populated_db, "tabinator"))

        assert data["version"] == "1.0"
        assert data["exported_at"]
        assert data["config"] == {"warning_tabs_open": 20, "max_tabs_open": 50}
        assert len(data["links"]) == 5

    def test_groups_keep_block_order(self, populated_db):
        """Test that groups export in the nested block shape."""
        data = json.loads(export_to_string(populated_db, "tabinator"))
        work = next(g for g in data["groups"] if g["name"] == "Work")

        assert work["include"] == [{"tags": ["work"], "names": [], "urls": []}]
        assert work["exclude"] == [{"tags": ["archive"], "names": [], "urls": []}]

    def test_empty_library(self, db):
        """Test exporting an empty database."""
        data = json.loads(export_to_string(db, "tabinator"))

        assert data["groups"] == []
        assert data["links"] == []


class TestCsvExport:
    """Test CSV export."""

    def test_header_and_rows(self, populated_db):
        """Test the header and one row per link."""
        rows = list(csv.reader(io.StringIO(export_to_string(populated_db, "csv"))))

        assert rows[0] == ["name", "url", "tags", "created_at", "updated_at"]
        assert len(rows) == 6

    def test_tags_joined_by_comma(self, populated_db):
        """Test that tags are comma-joined in one field."""
        reader = csv.DictReader(io.StringIO(export_to_string(populated_db, "csv")))
        by_url = {row["url"]: row for row in reader}

        assert by_url["https://wiki.example.com"]["tags"] == "archive,work"
        assert by_url["https://news.example.com"]["tags"] == ""

    def test_rows_ordered_by_name(self, populated_db):
        """Test that rows come out sorted by link name."""
        reader = csv.DictReader(io.StringIO(export_to_string(populated_db, "csv")))

        assert [row["name"] for row in reader] == ["GitHub", "News", "Old Wiki", "Python Docs", "Work Mail"]

    def test_quotes_commas_in_names(self, db):
        """Test that names containing commas survive."""
        db.add_link("https://a.com", name="One, Two")

        reader = csv.DictReader(io.StringIO(export_to_string(db, "csv")))
        assert next(reader)["name"] == "One, Two"


class TestFirefoxExport:
    """Test Firefox places JSON export."""

    def test_places_structure(self, populated_db):
        """Test the root container and its children."""
        data = json.loads(export_to_string(populated_db, "firefox"))

        assert data["type"] == "text/x-moz-place-container"
        assert data["root"] == "placesRoot"
        assert len(data["children"]) == 5

        child = next(c for c in data["children"] if c["uri"] == "https://docs.python.org")
        assert child["type"] == "text/x-moz-place"
        assert child["uri"] == "https://docs.python.org"
        assert child["title"] == "Python Docs"
        assert child["tags"] == "docs,python"

    def test_date_added_in_milliseconds(self, db):
        """Test that dateAdded is epoch milliseconds."""
        link = db.add_link("https://a.com", name="A")
        data = json.loads(export_to_string(db, "firefox"))

        assert data["children"][0]["dateAdded"] == int(link.created_at.timestamp() * 1000)


class TestHtmlExport:
    """Test Netscape bookmark HTML export."""

    @pytest.mark.parametrize("format", ["chrome", "edge", "safari", "opera", "netscape"])
    def test_browser_formats(self, populated_db, format):
        """Test that every browser format produces a Netscape file."""
        content = export_to_string(populated_db, format)

        assert content.startswith("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
        soup = BeautifulSoup(content, "html.parser")
        assert len(soup.find_all("a")) == 5

    def test_attributes(self, populated_db):
        """Test HREF, ADD_DATE and TAGS attributes."""
        soup = BeautifulSoup(export_to_string(populated_db, "chrome"), "html.parser")
        anchor = soup.find("a", href="https://wiki.example.com")

        assert anchor.get_text() == "Old Wiki"
        assert anchor["tags"] == "archive,work"
        assert anchor["add_date"].isdigit()

    def test_untagged_links_have_no_tags_attribute(self, populated_db):
        """Test that TAGS is omitted when a link has no tags."""
        soup = BeautifulSoup(export_to_string(populated_db, "chrome"), "html.parser")
        assert soup.find("a", href="https://news.example.com").get("tags") is None

    def test_anchors_ordered_by_name(self, db):
        """Test that bookmarks are listed by name, not insertion order."""
        db.add_link("https://z.com", name="Zebra")
        db.add_link("https://a.com", name="Aardvark")

        soup = BeautifulSoup(export_to_string(db, "chrome"), "html.parser")

        assert [a.get_text() for a in soup.find_all("a")] == ["Aardvark", "Zebra"]

    def test_html_escaped(self, db):
        """Test that names and URLs are escaped."""
        db.add_link("https://a.com/?x=1&y=2", name="Tom & Jerry \"quoted\"")

        content = export_to_string(db, "netscape")

        assert 'HREF="https://a.com/?x=1&amp;y=2"' in content
        assert "Tom &amp; Jerry &quot;quoted&quot;" in content


class TestExportFile:
    """Test export_file()."""

    def test_writes_file(self, populated_db, tmp_path):
        """Test that the export is written, creating parent directories."""
        path = tmp_path / "out" / "links.csv"
        export_file(populated_db, path, "csv")

        assert path.read_text(encoding="utf-8").startswith("name,url,tags")

    def test_unknown_format(self, db, tmp_path):
        """Test that an unknown format raises ValueError."""
        with pytest.raises(ValueError, match="Unknown format"):
            export_file(db, tmp_path / "x.out", "yaml")

    def test_all_formats_render(self, populated_db):
        """Test that every advertised format renders."""
        for format in EXPORT_FORMATS:
            assert export_to_string(populated_db, format)
