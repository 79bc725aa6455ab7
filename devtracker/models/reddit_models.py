"""Reddit data models for the developer post tracker.

This module defines the data structures that flow through the Reddit
ingestion pipeline, from the raw listing payload returned by Reddit to the
canonical Post handed to the write API.

Data Models:
    CommentNode: one comment (or the submission) inside a fetched thread
    Post: canonical post record produced by the normalizer

Raw platform items stay plain dicts (`{"kind": "t1", "data": {...}}`) since
they are immutable once received and only read by the normalizer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


# Reddit "thing" kind prefixes
KIND_REPLY = "t1"
KIND_SUBMISSION = "t3"
KIND_MORE = "more"


@dataclass
class CommentNode:
    """A single node of a fetched comment thread.

    Nodes are built from the raw listing children and exist only for the
    duration of one parent lookup.

    Attributes:
        id: Reddit ID without the type prefix
        kind: Reddit kind of the node ("t1" for comments, "t3" for the submission)
        author: Username of the author ("[deleted]" when missing)
        depth: Nesting depth inside its listing (0 = top-level)
        data: Raw `data` object of the listing child
        children: Direct replies, in the order Reddit returned them
    """
    id: str
    kind: str
    author: str
    depth: int
    data: Dict[str, Any] = field(default_factory=dict)
    children: List["CommentNode"] = field(default_factory=list)


@dataclass
class Post:
    """Canonical post produced from one Reddit item.

    Attributes:
        account_id: Tracked account the post belongs to
        section: Subreddit name
        timestamp: Creation time in epoch seconds
        topic_title: Title of the thread the post lives in
        topic_url: URL of the thread
        url: URL of the post itself (also the uniqueness key on the write side)
        text: Post body as HTML
    """
    account_id: Any = None
    section: str = ""
    timestamp: int = 0
    topic_title: str = ""
    topic_url: str = ""
    url: str = ""
    text: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Return the body expected by `POST /{game}/posts`."""
        return {
            "accountId": self.account_id,
            "content": self.text,
            "section": self.section,
            "timestamp": self.timestamp,
            "topic": self.topic_title,
            "topicUrl": self.topic_url,
            "url": self.url,
        }
