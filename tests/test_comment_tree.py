"""
Tests for comment tree resolution.

Behavioral tests verifying that find_node locates comments and submissions
inside fetched thread documents, depth-first and prefix-insensitively, and
reports "not found" as None rather than raising.
"""

import pytest

from devtracker.comment_tree import build_nodes, find_node, listing_children, thread_permalink, walk
from tests.reddit_fixtures import comment, deep_chain, listing, more, submission, thread


@pytest.fixture
def sample_thread():
    """
    a
    ├── a1
    │   └── a1x
    └── a2
    b
    └── b1
    """
    return thread([
        comment("a", replies=[
            comment("a1", replies=[comment("a1x")]),
            comment("a2"),
        ]),
        comment("b", replies=[comment("b1")]),
    ])


class TestFindNode:
    """Test lookup of a node by ID."""

    @pytest.mark.parametrize("target", ["a", "a1", "a1x", "a2", "b", "b1"])
    def test_finds_every_comment(self, sample_thread, target):
        """Each comment in the tree is found with its own data."""
        node = find_node(sample_thread, target)

        assert node is not None
        assert node.id == target
        assert node.data["id"] == target

    @pytest.mark.parametrize("target", ["t1_a1x", "t3_a1x", "a1x"])
    def test_search_key_prefix_is_stripped(self, sample_thread, target):
        """t1_/t3_ prefixes on the search key are ignored."""
        assert find_node(sample_thread, target).id == "a1x"

    def test_node_ids_prefix_is_stripped(self):
        """Prefixed IDs inside the document still match a bare key."""
        document = thread([comment("t1_zz9")])

        assert find_node(document, "zz9").id == "zz9"

    def test_finds_submission_in_first_listing(self, sample_thread):
        """The submission itself is a valid parent (top-level replies)."""
        node = find_node(sample_thread, "t3_6ok3fs")

        assert node is not None
        assert node.kind == "t3"
        assert node.data["title"] == "Patch notes"

    def test_depth_is_recorded(self, sample_thread):
        assert find_node(sample_thread, "a").depth == 0
        assert find_node(sample_thread, "a1").depth == 1
        assert find_node(sample_thread, "a1x").depth == 2

    def test_returns_first_match_depth_first(self):
        """With a repeated ID, the nested reply under the first sibling wins over the later sibling."""
        document = thread([
            comment("x", replies=[comment("dup", author="nested")]),
            comment("dup", author="sibling"),
        ])

        assert find_node(document, "dup").author == "nested"

    def test_missing_id_returns_none(self, sample_thread):
        """An absent ID is reported as None, never raised."""
        assert find_node(sample_thread, "t1_nothere") is None

    @pytest.mark.parametrize("document", [None, {}, "", [], [{}, "not a listing"], [listing([])]])
    def test_malformed_documents_return_none(self, document):
        assert find_node(document, "a") is None

    def test_empty_target_returns_none(self, sample_thread):
        assert find_node(sample_thread, "") is None

    def test_more_stubs_are_skipped(self):
        """"more" placeholders never match and do not break the walk."""
        document = thread([comment("a", replies=[more("hidden1", "hidden2"), comment("a1")])])

        assert find_node(document, "hidden1") is None
        assert find_node(document, "a1").id == "a1"

    def test_deep_thread_does_not_hit_recursion_limit(self):
        """A reply chain deeper than the interpreter recursion limit is still searchable."""
        document = thread([deep_chain(3000)])

        node = find_node(document, "t1_c2999")

        assert node is not None
        assert node.depth == 2999

    def test_max_depth_bounds_search(self, sample_thread):
        assert find_node(sample_thread, "a1x", max_depth=1) is None
        assert find_node(sample_thread, "a1", max_depth=1).id == "a1"


class TestTreeBuilding:
    """Test node construction and traversal order."""

    def test_walk_is_preorder(self, sample_thread):
        """Replies are visited before the next sibling."""
        nodes = build_nodes(listing_children(sample_thread[1]))

        assert [node.id for node in walk(nodes)] == ["a", "a1", "a1x", "a2", "b", "b1"]

    def test_missing_author_defaults_to_deleted(self):
        raw = comment("a")
        raw["data"]["author"] = None

        nodes = build_nodes([raw])

        assert nodes[0].author == "[deleted]"

    def test_empty_replies_string(self):
        """Reddit sends replies="" for leaf comments."""
        nodes = build_nodes([comment("leaf")])

        assert nodes[0].children == []


class TestThreadPermalink:
    """Test permalink extraction from the submission listing."""

    def test_returns_submission_permalink(self, sample_thread):
        assert thread_permalink(sample_thread) == "/r/Rainbow6/comments/6ok3fs/patch_notes/"

    def test_missing_submission(self):
        assert thread_permalink([]) == ""
        assert thread_permalink([listing([])]) == ""
        assert thread_permalink(None) == ""

    def test_custom_permalink(self):
        document = thread([], root=submission(permalink="/r/x/comments/1/t/"))

        assert thread_permalink(document) == "/r/x/comments/1/t/"
