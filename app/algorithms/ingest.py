import logging
import mimetypes
import os
import secrets
import string
from collections.abc import AsyncIterator

from starlette.concurrency import run_in_threadpool
from werkzeug.utils import secure_filename

from app.utils.errors import UploadTooLarge
from app.utils.metrics import attachments_rejected, attachments_stored
from app.utils.schemas import MediaKind, StoredAttachment

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/webm",
        "audio/mpeg",
    }
)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
VIDEO_EXTENSIONS = (".mp4", ".webm")
AUDIO_EXTENSIONS = (".mp3",)

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 6


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def media_kind(name: str | None) -> MediaKind | None:
    """How an attachment is rendered, decided by its stored extension only."""
    if not name:
        return None
    lowered = name.lower()
    if lowered.endswith(IMAGE_EXTENSIONS):
        return "image"
    if lowered.endswith(VIDEO_EXTENSIONS):
        return "video"
    if lowered.endswith(AUDIO_EXTENSIONS):
        return "audio"
    return None


def resolve_mime_type(filename: str, declared: str | None) -> str:
    declared = (declared or "").split(";", 1)[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def stored_name(filename: str) -> str:
    """Sanitized original name prefixed with a random token."""
    safe = secure_filename(filename) or "upload"
    return f"{random_token()}-{safe}"


def reserve_path(destination: str, filename: str) -> tuple[str, str]:
    """Pick a stored name not yet used in destination, creating it if needed."""
    os.makedirs(destination, exist_ok=True)
    while True:
        name = stored_name(filename)
        path = os.path.join(destination, name)
        if not os.path.exists(path):
            return name, path


async def ingest(
    filename: str | None,
    mime_type: str | None,
    chunks: AsyncIterator[bytes],
    destination: str,
    budget: int,
) -> StoredAttachment | None:
    """Stream an uploaded file into destination.

    Returns None when the file is dropped (no name or a type outside the
    whitelist); the submission then continues without an attachment.
    Raises UploadTooLarge as soon as more than budget bytes arrive, after
    removing whatever was written. Disk work runs in the threadpool.
    """
    if not filename:
        return None

    content_type = resolve_mime_type(filename, mime_type)
    if content_type not in ALLOWED_MIME_TYPES:
        attachments_rejected.labels(reason="mime").inc()
        logger.info("[Ingest] dropped %r with unsupported type %s", filename, content_type)
        # Still enforce the cap on bytes we are discarding
        received = 0
        async for chunk in chunks:
            received += len(chunk)
            if received > budget:
                attachments_rejected.labels(reason="size").inc()
                raise UploadTooLarge(budget)
        return None

    name, path = await run_in_threadpool(reserve_path, destination, filename)

    size = 0
    try:
        fh = await run_in_threadpool(open, path, "wb")
        try:
            async for chunk in chunks:
                size += len(chunk)
                if size > budget:
                    raise UploadTooLarge(budget)
                await run_in_threadpool(fh.write, chunk)
        finally:
            await run_in_threadpool(fh.close)
    except UploadTooLarge:
        attachments_rejected.labels(reason="size").inc()
        logger.warning("[Ingest] %r exceeded %d bytes, discarding", filename, budget)
        await run_in_threadpool(_remove, path)
        raise
    except Exception:
        await run_in_threadpool(_remove, path)
        raise

    attachments_stored.inc()
    logger.info("[Ingest] stored %s from %r (%d bytes, %s)", name, filename, size, content_type)
    return StoredAttachment(name=name, size=size)


def discard(attachment: StoredAttachment | None, destination: str) -> None:
    """Remove a stored file that ended up referenced by no post."""
    if attachment is None:
        return
    if _remove(os.path.join(destination, attachment.name)):
        logger.info("[Ingest] removed unreferenced attachment %s", attachment.name)


def _remove(path: str) -> bool:
    if os.path.exists(path):
        os.remove(path)
        return True
    return False
