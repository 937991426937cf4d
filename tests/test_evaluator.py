"""
Tests for tabinator/rules/evaluator.py

Tests membership semantics:
- Within-block OR across tags, names and urls
- AND across include blocks, OR across exclude blocks
- Vacuous results for missing and empty blocks
- Exact, case-sensitive comparisons
"""
import pytest

from tabinator.rules import (
    Group,
    LinkRecord,
    MatchBlock,
    block_matches,
    exclude_matches,
    explain,
    include_matches,
    matches,
)


@pytest.fixture
def doc():
    return LinkRecord(name="Doc", url="https://docs.example.com", tags={"work", "ref"})


class TestBlockMatches:
    """Test matching a single block."""

    def test_tag_match(self, doc):
        """Test that sharing any tag matches."""
        assert block_matches(doc, MatchBlock(tags=["ref", "other"]))

    def test_name_match(self, doc):
        """Test that an exact name matches."""
        assert block_matches(doc, MatchBlock(names=["Doc"]))

    def test_url_match(self, doc):
        """Test that an exact URL matches."""
        assert block_matches(doc, MatchBlock(urls=["https://docs.example.com"]))

    def test_no_match(self, doc):
        """Test that unrelated values do not match."""
        assert not block_matches(doc, MatchBlock(tags=["home"], names=["Other"], urls=["https://x.com"]))

    def test_within_block_or(self):
        """Test that any one field matching is enough."""
        block = MatchBlock(tags=["work"], urls=["https://x.com"])

        tagged = LinkRecord(name="A", url="https://elsewhere.com", tags={"work"})
        untagged = LinkRecord(name="B", url="https://x.com")

        assert block_matches(tagged, block)
        assert block_matches(untagged, block)

    def test_url_exact_not_substring(self):
        """Test that URLs compare exactly."""
        block = MatchBlock(urls=["https://x.com/a"])

        assert not block_matches(LinkRecord(name="L", url="https://x.com/ab"), block)
        assert not block_matches(LinkRecord(name="L", url="https://x.com/"), block)

    def test_name_exact_not_substring(self, doc):
        """Test that names compare exactly."""
        assert not block_matches(doc, MatchBlock(names=["Do"]))
        assert not block_matches(doc, MatchBlock(names=["Doc Page"]))

    def test_case_sensitive(self, doc):
        """Test that comparisons are case-sensitive."""
        assert not block_matches(doc, MatchBlock(tags=["Work"]))
        assert not block_matches(doc, MatchBlock(names=["doc"]))
        assert not block_matches(doc, MatchBlock(urls=["HTTPS://docs.example.com"]))

    def test_field_types_do_not_cross(self, doc):
        """Test that a tag value is never compared against the name."""
        assert not block_matches(doc, MatchBlock(tags=["Doc"]))
        assert not block_matches(doc, MatchBlock(names=["work"]))

    def test_empty_block_matches_everything(self, doc):
        """Test that a block with no values matches any link."""
        assert block_matches(doc, MatchBlock())
        assert block_matches(LinkRecord(name="", url=""), MatchBlock())

    def test_dict_link(self):
        """Test that plain dicts with tag lists are accepted."""
        link = {"name": "A", "url": "https://a.com", "tags": ["x"]}
        assert block_matches(link, MatchBlock(tags=["x"]))

    def test_dict_link_comma_tags(self):
        """Test that comma-separated tag strings are accepted."""
        link = {"name": "A", "url": "https://a.com", "tags": "x, y"}
        assert block_matches(link, MatchBlock(tags=["y"]))

    def test_object_with_tag_objects(self):
        """Test that links whose tags are objects with a name work."""
        class Tag:
            def __init__(self, name):
                self.name = name

        class Link:
            name = "A"
            url = "https://a.com"
            tags = [Tag("x")]

        assert block_matches(Link(), MatchBlock(tags=["x"]))


class TestIncludeExclude:
    """Test combination across blocks."""

    def test_vacuous_include(self, doc):
        """Test that no include blocks means included."""
        assert include_matches(doc, Group())

    def test_vacuous_exclude(self, doc):
        """Test that no exclude blocks means not excluded."""
        assert not exclude_matches(doc, Group())

    def test_include_is_and(self, doc):
        """Test that one failing include block fails the whole include."""
        b1 = MatchBlock(tags=["work"])
        b2 = MatchBlock(tags=["home"])

        assert include_matches(doc, Group(include=[b1]))
        assert not include_matches(doc, Group(include=[b1, b2]))
        assert not include_matches(doc, Group(include=[b2, b1]))

    def test_exclude_is_or(self, doc):
        """Test that one matching exclude block excludes."""
        b1 = MatchBlock(tags=["home"])
        b2 = MatchBlock(names=["Doc"])

        assert not exclude_matches(doc, Group(exclude=[b1]))
        assert exclude_matches(doc, Group(exclude=[b1, b2]))

    def test_empty_exclude_block_excludes_everything(self, doc):
        """Test that an empty exclude block matches, and so excludes, every link."""
        assert not matches(doc, Group(exclude=[MatchBlock()]))

    def test_empty_include_block_is_identity(self, doc):
        """Test that adding an empty include block changes nothing."""
        b = MatchBlock(tags=["work"])
        assert matches(doc, Group(include=[b, MatchBlock()])) == matches(doc, Group(include=[b]))


class TestMatches:
    """Test full group membership."""

    def test_unrestricted_group_matches_all(self, sample_links):
        """Test that a group with no blocks matches every link."""
        group = Group(name="All")
        assert all(matches(link, group) for link in sample_links)

    def test_exclude_only(self, sample_links):
        """Test that an exclude-only group matches exactly the non-excluded links."""
        block = MatchBlock(tags=["archive"])
        group = Group(name="NoArchive", exclude=[block])

        for link in sample_links:
            assert matches(link, group) is (not block_matches(link, block))

    def test_work_group(self, doc):
        """Test that adding an excluded tag flips membership."""
        group = Group(
            name="Work",
            include=[MatchBlock(tags=["work"])],
            exclude=[MatchBlock(tags=["archive"])],
        )
        archived = LinkRecord(name=doc.name, url=doc.url, tags=doc.tags | {"archive"})

        assert matches(doc, group)
        assert not matches(archived, group)

    def test_two_include_blocks_need_both(self, doc):
        """Test that a link matching only the first include block is out."""
        group = Group(
            name="Both",
            include=[MatchBlock(names=["Doc"]), MatchBlock(urls=["https://other.com"])],
        )
        assert not matches(doc, group)

    def test_exclude_wins_over_include(self, doc):
        """Test that exclusion overrides a full include match."""
        group = Group(include=[MatchBlock(tags=["work"])], exclude=[MatchBlock(urls=[doc.url])])
        assert not matches(doc, group)


class TestExplain:
    """Test explain()."""

    def test_per_block_results(self, doc):
        """Test that each block gets its own result."""
        group = Group(
            include=[MatchBlock(tags=["work"]), MatchBlock(tags=["home"])],
            exclude=[MatchBlock(tags=["archive"]), MatchBlock(names=["Doc"])],
        )
        result = explain(doc, group)

        assert result.include == (True, False)
        assert result.exclude == (False, True)
        assert not result.included
        assert result.excluded
        assert not result.matches

    @pytest.mark.parametrize("group", [
        Group(),
        Group(include=[MatchBlock(tags=["work"])]),
        Group(include=[MatchBlock(tags=["work"])], exclude=[MatchBlock(tags=["ref"])]),
        Group(exclude=[MatchBlock(names=["Other"])]),
    ])
    def test_agrees_with_matches(self, doc, group):
        """Test that explain reaches the same decision as matches."""
        assert explain(doc, group).matches == matches(doc, group)
