import os
import tempfile

import pytest

import tabinator.config
import tabinator.db
from tabinator.db import Database
from tabinator.rules import Group, LinkRecord, MatchBlock


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user config files, TABINATOR_* variables and globals out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("TABINATOR_"):
            monkeypatch.delenv(key)

    monkeypatch.setattr(tabinator.config, "_config", None)
    monkeypatch.setattr(tabinator.db, "_db", None)
    yield


@pytest.fixture
def db():
    """Create a temporary database for each test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        yield Database(path=db_path)


@pytest.fixture
def sample_links():
    """Link records covering tag, name and URL matches."""
    return [
        LinkRecord(name="Python Docs", url="https://docs.python.org", tags={"python", "docs"}),
        LinkRecord(name="GitHub", url="https://github.com", tags={"dev", "git"}),
        LinkRecord(name="Work Mail", url="https://mail.example.com", tags={"work"}),
        LinkRecord(name="Old Wiki", url="https://wiki.example.com", tags={"work", "archive"}),
        LinkRecord(name="News", url="https://news.example.com", tags=set()),
    ]


@pytest.fixture
def populated_db(db, sample_links):
    """Database holding the sample links and two groups."""
    for link in sample_links:
        db.add_link(url=link.url, name=link.name, tags=sorted(link.tags))

    db.create_group(Group(
        name="Work",
        include=[MatchBlock(tags=["work"])],
        exclude=[MatchBlock(tags=["archive"])],
    ))
    db.create_group(Group(
        name="Reading",
        include=[MatchBlock(tags=["docs"], names=["News"])],
    ))
    return db


@pytest.fixture
def target_db():
    """A second, empty database for import round-trips."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Database(path=os.path.join(tmpdir, "target.db"))
