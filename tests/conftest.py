"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from app.algorithms.codec import encode
from app.board import Board
from app.main import create_app
from app.store.memory import MemoryStore
from app.utils.config import Settings
from app.utils.schemas import Post


@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "static"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(tmp_path, upload_dir):
    """Settings pointing every path at a temporary directory."""
    return Settings(
        store_backend="memory",
        db_path=str(tmp_path / "board.db"),
        upload_dir=str(upload_dir),
        max_upload_bytes=64 * 1024,
    )


@pytest.fixture
def board(store, test_settings):
    return Board(store, test_settings)


@pytest.fixture
def client(test_settings):
    """HTTP client against a fresh app; startup opens an in-memory board."""
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


@pytest.fixture
def put_post(store):
    """Write a Post straight into the store, bypassing validation."""

    def _put(post_id, parent_id="0", last_activity=1_000, **fields):
        post = Post(
            id=post_id,
            parent_id=parent_id,
            title=fields.pop("title", f"title {post_id}"),
            message=fields.pop("message", f"message {post_id}"),
            last_activity=last_activity,
            **fields,
        )
        store.put(post_id.encode("utf-8"), encode(post))
        return post

    return _put
