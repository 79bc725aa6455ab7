"""Comment tree resolution for fetched Reddit threads.

A thread document is a list of listings (`[submission_listing, comment_listing]`),
and every comment nests its replies as another listing. This module turns
listing children into CommentNode trees and searches them depth-first
(a node's replies before its next sibling) for a specific ID.

Traversal uses an explicit stack so very deep threads cannot hit the
interpreter's recursion limit.
"""

from typing import Any, Iterable, Iterator, List, Optional

import structlog

from devtracker.models.reddit_models import CommentNode, KIND_MORE
from devtracker.reddit import parse_id

logger = structlog.get_logger()


def listing_children(listing: Any) -> List[Any]:
    """Return the children of a raw listing.

    Reddit uses an empty string for "no replies", so anything that is not a
    listing object yields an empty list.
    """
    if not isinstance(listing, dict):
        return []
    data = listing.get("data")
    if not isinstance(data, dict):
        return []
    children = data.get("children")
    return children if isinstance(children, list) else []


def build_nodes(children: Iterable[Any], max_depth: Optional[int] = None) -> List[CommentNode]:
    """Convert raw listing children into CommentNode trees.

    "more" stubs are skipped: they only carry IDs of comments Reddit did not
    include in the response.

    Args:
        children: Raw listing children (`[{"kind": "t1", "data": {...}}, ...]`)
        max_depth: Deepest reply level to keep (None keeps everything)

    Returns:
        list[CommentNode]: Top-level nodes in listing order
    """
    roots: List[CommentNode] = []
    stack = [(raw, 0, roots) for raw in reversed(list(children))]

    while stack:
        raw, depth, siblings = stack.pop()
        if not isinstance(raw, dict) or raw.get("kind") == KIND_MORE:
            continue

        data = raw.get("data")
        if not isinstance(data, dict):
            continue

        node = CommentNode(
            id=parse_id(data.get("id", "")),
            kind=raw.get("kind", ""),
            author=data.get("author") or "[deleted]",
            depth=depth,
            data=data,
        )
        siblings.append(node)

        if max_depth is not None and depth >= max_depth:
            continue

        for reply in reversed(listing_children(data.get("replies"))):
            stack.append((reply, depth + 1, node.children))

    return roots


def walk(nodes: Iterable[CommentNode]) -> Iterator[CommentNode]:
    """Yield nodes depth-first, each node's replies before its next sibling."""
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(
    listings: Any,
    target_id: str,
    max_depth: Optional[int] = None,
) -> Optional[CommentNode]:
    """Find a comment or submission by ID inside a thread document.

    Every listing of the document is searched in order, so the submission
    itself (first listing) can be found as well as any comment.

    Args:
        listings: Thread document as returned by RedditClient.fetch_thread
        target_id: ID to look for, with or without "t1_"/"t3_" prefix
        max_depth: Deepest reply level to search (None searches everything)

    Returns:
        CommentNode for the first match, or None when the ID is not in the
        document. Not finding a node is expected for very large threads where
        Reddit truncates the reply tree.
    """
    if not isinstance(listings, list):
        logger.debug("invalid_thread_document", document_type=type(listings).__name__)
        return None

    target = parse_id(target_id)
    if not target:
        return None

    for listing in listings:
        for node in walk(build_nodes(listing_children(listing), max_depth)):
            if parse_id(node.id) == target:
                return node

    return None


def thread_permalink(listings: Any) -> str:
    """Return the relative permalink of the thread's submission.

    Example:
        '/r/Rainbow6/comments/6ok3fs/patch_notes/'
    """
    if not isinstance(listings, list) or not listings:
        return ""
    children = listing_children(listings[0])
    if not children or not isinstance(children[0], dict):
        return ""
    return (children[0].get("data") or {}).get("permalink", "")
