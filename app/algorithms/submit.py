import logging
import time

from markupsafe import escape

from app.algorithms.codec import decode, encode
from app.algorithms.ingest import random_token
from app.store.base import KVStore
from app.utils.errors import DecodeError, PostValidationError, StoreError
from app.utils.metrics import orphan_replies, posts_created, submissions_rejected
from app.utils.schemas import ROOT_PARENT_ID, Post

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 30
MESSAGE_MAX_LENGTH = 50000
ID_ATTEMPTS = 16


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def validate(
    title: str,
    message: str,
    title_max: int = TITLE_MAX_LENGTH,
    message_max: int = MESSAGE_MAX_LENGTH,
) -> None:
    if not title.strip() or not message.strip():
        submissions_rejected.labels(reason="empty").inc()
        raise PostValidationError("Title and message are mandatory.")
    if len(title) > title_max or len(message) > message_max:
        submissions_rejected.labels(reason="too_long").inc()
        raise PostValidationError("Title or message is too long.")


def new_post_id(store: KVStore) -> str:
    for _ in range(ID_ATTEMPTS):
        post_id = random_token()
        if not store.contains(post_id.encode("utf-8")):
            return post_id
        logger.warning("[Board] post id collision on %s, drawing again", post_id)
    raise StoreError(f"Could not allocate a free post id after {ID_ATTEMPTS} attempts")


def submit(
    store: KVStore,
    title: str,
    message: str,
    parent_id: str = ROOT_PARENT_ID,
    attachment: str | None = None,
    *,
    now: int | None = None,
    title_max: int = TITLE_MAX_LENGTH,
    message_max: int = MESSAGE_MAX_LENGTH,
) -> str:
    """Store a new root post or reply and return its id.

    Replies bump the root's last_activity. A reply whose parent is missing
    is still stored; it just never shows up under any thread.
    """
    validate(title, message, title_max, message_max)
    parent_id = (parent_id or "").strip() or ROOT_PARENT_ID
    timestamp = now_ms() if now is None else now

    post = Post(
        id=new_post_id(store),
        parent_id=parent_id,
        title=str(escape(title)),
        message=str(escape(message)),
        attachment=attachment,
        last_activity=timestamp,
    )
    store.put(post.id.encode("utf-8"), encode(post))

    if post.is_root:
        posts_created.labels(kind="root").inc()
        logger.info("[Board] created root post id=%s", post.id)
    else:
        posts_created.labels(kind="reply").inc()
        bump(store, parent_id, timestamp)
        logger.info("[Board] created reply id=%s parent=%s", post.id, parent_id)
    return post.id


def bump(store: KVStore, root_id: str, timestamp: int) -> bool:
    """Move a root's last_activity forward to timestamp.

    Returns False when the root is missing, unreadable or not a root.
    """
    key = root_id.encode("utf-8")
    raw = store.get(key)
    if raw is None:
        orphan_replies.inc()
        logger.warning("[Board] reply references unknown parent %s, stored as orphan", root_id)
        return False
    try:
        root = decode(raw)
    except DecodeError as exc:
        logger.warning("[Board] parent %s is unreadable, not bumping: %s", root_id, exc)
        return False
    if not root.is_root:
        # Only roots carry thread activity; replies stay immutable
        orphan_replies.inc()
        logger.warning("[Board] parent %s is itself a reply, not bumping", root_id)
        return False

    if timestamp > root.last_activity:
        root = root.model_copy(update={"last_activity": timestamp})
        store.put(key, encode(root))
    return True
