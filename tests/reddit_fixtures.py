"""Builders for raw Reddit payloads used across the test suite.

Shapes follow Reddit's public JSON: a thread is a list of two listings
(submission, comments) and every comment nests its replies as a listing,
or "" when it has none.
"""

import html


def encode(markup):
    """Entity-encode HTML the way Reddit does in *_html fields."""
    return html.escape(markup, quote=False)


def listing(children):
    return {"kind": "Listing", "data": {"children": list(children)}}


def comment(comment_id, author="someone", body="<p>text</p>", replies=None, **extra):
    data = {
        "id": comment_id,
        "name": f"t1_{comment_id}",
        "author": author,
        "body_html": encode(f'<div class="md">{body}</div>'),
        "replies": listing(replies) if replies else "",
    }
    data.update(extra)
    return {"kind": "t1", "data": data}


def more(*ids):
    return {"kind": "more", "data": {"count": len(ids), "children": list(ids)}}


def submission(submission_id="6ok3fs", permalink="/r/Rainbow6/comments/6ok3fs/patch_notes/", **extra):
    data = {
        "id": submission_id,
        "name": f"t3_{submission_id}",
        "author": "Ubi_Dev",
        "title": "Patch notes",
        "permalink": permalink,
        "url": f"https://www.reddit.com{permalink}",
        "domain": "self.Rainbow6",
        "subreddit": "Rainbow6",
        "created_utc": 1500000000.0,
    }
    data.update(extra)
    return {"kind": "t3", "data": data}


def thread(comments, root=None):
    """Build a thread document: [submission listing, comment listing]."""
    return [listing([root or submission()]), listing(comments)]


def deep_chain(depth, prefix="c"):
    """A single reply chain `depth` levels deep; the deepest id is f"{prefix}{depth - 1}"."""
    node = comment(f"{prefix}{depth - 1}", body=f"<p>level {depth - 1}</p>")
    for level in range(depth - 2, -1, -1):
        node = comment(f"{prefix}{level}", body=f"<p>level {level}</p>", replies=[node])
    return node


def reply_item(comment_id="dk2x8yz", parent_id="t1_dk2abc", link_id="t3_6ok3fs", **extra):
    """A developer's reply as it appears in the user's overview listing."""
    data = {
        "id": comment_id,
        "name": f"t1_{comment_id}",
        "author": "Ubi_Dev",
        "body_html": encode('<div class="md"><p>We are on it.</p></div>'),
        "link_id": link_id,
        "parent_id": parent_id,
        "link_title": "Patch notes",
        "link_permalink": "https://www.reddit.com/r/Rainbow6/comments/6ok3fs/patch_notes/",
        "subreddit": "Rainbow6",
        "created_utc": 1500000123.0,
    }
    data.update(extra)
    return {"kind": "t1", "data": data}
