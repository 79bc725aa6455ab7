"""Reddit item normalization.

Converts one raw Reddit item (a comment or a submission, as returned in a
user's listing) into the canonical Post stored by the write API.

Key Functions:
    decode_html: undo Reddit's double entity encoding
    render_parent_context: quote the comment a reply answers
    normalize_item: build a Post from a raw item

Reddit returns `body_html`/`selftext_html` entity-encoded, and some payloads
are encoded twice, so decoding is always applied two times.
"""

import html
import re
from typing import Any, Callable, Dict, Optional

import structlog

from devtracker.comment_tree import find_node, thread_permalink
from devtracker.models.reddit_models import (
    CommentNode, Post, KIND_REPLY, KIND_SUBMISSION,
)

logger = structlog.get_logger()

REDDIT_WEB_BASE = "https://www.reddit.com"
LINK_REWRITE_BASE = "https://reddit.com"

IMAGE_DOMAINS = (
    "i.redd.it",
    "i.imgflip.com",
    "imgur.com",
    "i.imgur.com",
)

# Body Reddit renders for a deleted comment, encoded and decoded
DELETED_MARKER = '&lt;div class="md"&gt;&lt;p&gt;[deleted]&lt;/p&gt;'
DELETED_MARKER_DECODED = '<div class="md"><p>[deleted]</p>'

_RELATIVE_HREF = re.compile(r'href="/(.+?)/', re.IGNORECASE)


def decode_html(encoded_html: Optional[str]) -> str:
    """Decode Reddit's entity-encoded HTML.

    Example:
        >>> decode_html("&lt;p&gt;hi&lt;/p&gt;")
        '<p>hi</p>'
        >>> decode_html("&amp;lt;b&amp;gt;")
        '<b>'
    """
    if not encoded_html:
        return ""
    return html.unescape(html.unescape(encoded_html))


def is_image_domain(domain: Optional[str]) -> bool:
    """Return True when a submission's domain is a known image host."""
    return domain in IMAGE_DOMAINS


def image_tag(url: str, title: str) -> str:
    return f'<img src="{url}" title="{title}" />'


def link_tag(url: str, title: str) -> str:
    return f'<a href="{url}">{title}</a>'


def rewrite_relative_links(text: str) -> str:
    """Point relative Reddit links (`href="/r/x/..."`) at reddit.com.

    Example:
        >>> rewrite_relative_links('<a href="/u/someone/">u</a>')
        '<a href="https://reddit.com/u/someone/">u</a>'
    """
    return _RELATIVE_HREF.sub(f'href="{LINK_REWRITE_BASE}/\\1/', text)


def _secure_embed_content(data: Dict[str, Any]) -> str:
    embed = data.get("secure_media_embed")
    if isinstance(embed, dict):
        return embed.get("content") or ""
    return ""


def parent_text(data: Dict[str, Any]) -> str:
    """Return the (still encoded) HTML used to quote a parent node.

    Comments carry `body_html`, self posts `selftext_html`, media posts an
    embed; link posts fall back to an encoded image or link tag.
    """
    text = data.get("body_html") or data.get("selftext_html") or _secure_embed_content(data)
    if text:
        return text

    url = data.get("url", "")
    title = data.get("title", "")
    if is_image_domain(data.get("domain")):
        return html.escape(image_tag(url, title))
    if url:
        return html.escape(link_tag(url, title))
    return ""


def is_deleted(text: str) -> bool:
    return DELETED_MARKER in text or DELETED_MARKER_DECODED in text


def quote_node(node: CommentNode, permalink: str, text: str) -> str:
    """Render a parent node as a quote block linking to the quoted comment."""
    return (
        '<blockquote>'
        '<div class="bb_quoteauthor">Originally posted by '
        f'<b><a href="{permalink}{node.id}">{node.author}</a></b>'
        '</div>'
        f'{decode_html(text)}'
        '</blockquote>'
    )


def render_parent_context(
    thread: Any,
    parent_id: str,
    find: Callable[[Any, str], Optional[CommentNode]] = find_node,
) -> str:
    """Quote the node a reply answers, or return "" when there is nothing to quote.

    Args:
        thread: Thread document the reply belongs to
        parent_id: `parent_id` of the reply ("t1_..." or "t3_...")
        find: Node lookup, defaults to comment_tree.find_node

    Returns:
        str: Blockquote HTML, or "" when the parent is missing from the
            thread (Reddit truncates very large threads) or was deleted
    """
    node = find(thread, parent_id)
    if node is None:
        logger.info("parent_comment_not_found", parent_id=parent_id)
        return ""

    text = parent_text(node.data)
    if not text:
        return ""

    if is_deleted(text):
        logger.debug("parent_comment_deleted", parent_id=parent_id)
        return ""

    return quote_node(node, thread_permalink(thread), text)


def _normalize_reply(post: Post, data: Dict[str, Any], reddit_client,
                     find: Callable[[Any, str], Optional[CommentNode]]) -> None:
    post.topic_title = data.get("link_title", "")
    post.topic_url = data.get("link_permalink") or data.get("link_url") or ""
    post.url = f"{post.topic_url}{data.get('id', '')}/"

    context = ""
    link_id = data.get("link_id")
    parent_id = data.get("parent_id")
    if link_id and parent_id:
        thread = reddit_client.fetch_thread(link_id)
        context = render_parent_context(thread, parent_id, find)

    post.text = rewrite_relative_links(context + decode_html(data.get("body_html")))


def _normalize_submission(post: Post, data: Dict[str, Any]) -> None:
    post.topic_title = data.get("title", "")
    post.topic_url = data.get("url", "")

    selftext = data.get("selftext_html")
    embed = _secure_embed_content(data)

    if selftext or embed:
        post.text = decode_html(selftext or embed)
        # A self post is its own topic
        post.url = post.topic_url
        return

    post.url = f"{REDDIT_WEB_BASE}{data.get('permalink', '')}"
    if is_image_domain(data.get("domain")):
        post.text = image_tag(data.get("url", ""), post.topic_title)
        # The title link goes to the Reddit page, not the raw image
        post.topic_url = post.url
    else:
        post.text = link_tag(data.get("url", ""), post.topic_title)


def normalize_item(
    account_id: Any,
    item: Dict[str, Any],
    reddit_client,
    find: Callable[[Any, str], Optional[CommentNode]] = find_node,
) -> Post:
    """Build a canonical Post from a raw Reddit item.

    Replies ("t1") are prefixed with a quote of their parent, fetched through
    `reddit_client`. Submissions ("t3") become self text, an image or a link.
    Any other kind is logged and yields a Post with empty text and url; the
    caller still submits it.

    Args:
        account_id: Tracked account the item belongs to
        item: Raw item, `{"kind": ..., "data": {...}}`
        reddit_client: Object with `fetch_thread(thread_id)` (RedditClient)
        find: Node lookup used for the parent context

    Returns:
        Post

    Raises:
        ValueError: If the item has no data object
        RedditAPIError: If the parent thread of a reply cannot be fetched

    Example:
        >>> post = normalize_item(12, {"kind": "t3", "data": {...}}, RedditClient())
        >>> post.to_payload()["url"]
        'https://www.reddit.com/r/Rainbow6/comments/6ok3fs/patch_notes/'
    """
    data = item.get("data") if isinstance(item, dict) else None
    if not isinstance(data, dict):
        raise ValueError("Reddit item has no data object")

    kind = item.get("kind")
    post = Post()

    if kind == KIND_REPLY:
        _normalize_reply(post, data, reddit_client, find)
    elif kind == KIND_SUBMISSION:
        _normalize_submission(post, data)
    else:
        logger.warning("unknown_reddit_kind", kind=kind, reddit_id=data.get("id"))

    post.account_id = account_id
    post.section = data.get("subreddit", "")
    post.timestamp = int(float(data.get("created_utc") or 0))

    return post
