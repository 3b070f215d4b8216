import hashlib
import math
import re

from app.algorithms.ingest import media_kind
from app.algorithms.threads import list_roots, reply_counts
from app.store.base import KVStore
from app.utils.schemas import ListingEntry, ListingPage, Post

DEFAULT_PAGE_SIZE = 30
DEFAULT_TRUNCATE_LENGTH = 2700

# An escaped entity cut short at the end of a truncated message, e.g. "&am"
_PARTIAL_ENTITY = re.compile(r"&#?\w{0,8}$")


def display_color(post_id: str) -> str:
    """Stable #RRGGBB color for a post id, for visual grouping only."""
    digest = hashlib.blake2b(post_id.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "little")
    r = value & 0xFF
    g = (value >> 8) & 0xFF
    b = (value >> 16) & 0xFF
    return f"#{r:02X}{g:02X}{b:02X}"


def truncate_message(message: str, limit: int = DEFAULT_TRUNCATE_LENGTH) -> tuple[str, bool]:
    if len(message) <= limit:
        return message, False
    cut = message[:limit]
    partial = _PARTIAL_ENTITY.search(cut)
    if partial:
        cut = cut[: partial.start()]
    return cut, True


def sort_by_activity(posts: list[Post]) -> list[Post]:
    return sorted(posts, key=lambda post: post.last_activity, reverse=True)


def page(
    store: KVStore,
    page_number: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    truncate_length: int = DEFAULT_TRUNCATE_LENGTH,
) -> ListingPage:
    """One page of root posts, most recently bumped thread first."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    page_number = max(page_number, 1)

    roots = sort_by_activity(list_roots(store))
    total_pages = math.ceil(len(roots) / page_size)
    offset = (page_number - 1) * page_size
    selected = roots[offset : offset + page_size]

    counts = reply_counts(store, (post.id for post in selected)) if selected else {}

    entries = []
    for post in selected:
        message, truncated = truncate_message(post.message, truncate_length)
        entries.append(
            ListingEntry(
                id=post.id,
                title=post.title,
                message=message,
                truncated=truncated,
                read_more=f"/post/{post.id}" if truncated else None,
                attachment=post.attachment,
                media_kind=media_kind(post.attachment),
                reply_count=counts.get(post.id, 0),
                display_color=display_color(post.id),
            )
        )

    has_next = page_number < total_pages
    has_prev = page_number > 1
    return ListingPage(
        page=page_number,
        posts=entries,
        has_next=has_next,
        has_prev=has_prev,
        next_page=page_number + 1 if has_next else None,
        prev_page=page_number - 1 if has_prev else None,
    )
