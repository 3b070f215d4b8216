import logging
from collections import Counter
from collections.abc import Iterable, Iterator

from app.algorithms.codec import decode
from app.algorithms.ingest import media_kind
from app.store.base import KVStore
from app.utils.errors import DecodeError
from app.utils.metrics import corrupt_records, scan_latency
from app.utils.schemas import ROOT_PARENT_ID, Post, ThreadEntry, ThreadView

logger = logging.getLogger(__name__)


def iter_posts(store: KVStore) -> Iterator[Post]:
    """Decode every record in the store, skipping the ones that are corrupt."""
    with scan_latency.time():
        for key, value in store.scan_all():
            try:
                yield decode(value)
            except DecodeError as exc:
                corrupt_records.inc()
                logger.warning("[Board] skipping unreadable record key=%r: %s", key, exc)


def list_roots(store: KVStore) -> list[Post]:
    return [post for post in iter_posts(store) if post.parent_id == ROOT_PARENT_ID]


def list_replies(store: KVStore, root_id: str) -> list[Post]:
    return [post for post in iter_posts(store) if post.parent_id == root_id]


def reply_count(store: KVStore, root_id: str) -> int:
    return len(list_replies(store, root_id))


def reply_counts(store: KVStore, root_ids: Iterable[str]) -> dict[str, int]:
    """Reply counts for several roots from a single scan."""
    wanted = set(root_ids)
    counts = Counter(
        post.parent_id for post in iter_posts(store) if post.parent_id in wanted
    )
    return {root_id: counts.get(root_id, 0) for root_id in wanted}


def get_post(store: KVStore, post_id: str) -> Post | None:
    raw = store.get(post_id.encode("utf-8"))
    if raw is None:
        return None
    return decode(raw)


def thread(store: KVStore, root_id: str) -> ThreadView | None:
    """Root post followed by its replies, oldest reply first.

    Returns None when no readable post is stored under root_id.
    """
    root = None
    replies = []
    for post in iter_posts(store):
        if post.id == root_id:
            root = post
        elif post.parent_id == root_id:
            replies.append(post)
    if root is None:
        return None

    # Stable sort: replies created in the same millisecond keep scan order
    replies.sort(key=lambda post: post.last_activity)

    entries = [_thread_entry(root, "Original Post")]
    entries.extend(
        _thread_entry(reply, f"Reply {number}") for number, reply in enumerate(replies, start=1)
    )
    return ThreadView(parent_id=root_id, posts=entries)


def _thread_entry(post: Post, label: str) -> ThreadEntry:
    return ThreadEntry(
        label=label,
        id=post.id,
        title=post.title,
        message=post.message,
        attachment=post.attachment,
        media_kind=media_kind(post.attachment),
    )
