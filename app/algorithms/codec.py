from pydantic import ValidationError

from app.utils.errors import DecodeError
from app.utils.schemas import Post


def encode(post: Post) -> bytes:
    return post.model_dump_json().encode("utf-8")


def decode(data: bytes) -> Post:
    """Rebuild a Post from its stored bytes.

    Truncated JSON, bytes that are not UTF-8 and objects missing fields all
    raise DecodeError so scans can skip the record.
    """
    try:
        return Post.model_validate_json(data)
    except (ValidationError, UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"Invalid post record: {exc}") from exc
