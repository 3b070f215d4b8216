import logging
import threading
from contextlib import contextmanager

from app.algorithms import pagination, submit, threads
from app.store.base import KVStore
from app.store.memory import MemoryStore
from app.store.sqlite import SqliteStore
from app.utils.config import Settings
from app.utils.schemas import ROOT_PARENT_ID, ListingPage, ThreadView

logger = logging.getLogger(__name__)


def open_store(settings: Settings) -> KVStore:
    backend = settings.store_backend.strip().lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SqliteStore(settings.db_path)
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


class Board:
    """The shared store handle.

    Every operation runs inside one session() scope, so readers never see
    half of a submit and the parent bump is not interleaved with another
    submit on the same handle.
    """

    def __init__(self, store: KVStore, settings: Settings):
        self.store = store
        self.settings = settings
        self._lock = threading.RLock()

    @contextmanager
    def session(self):
        with self._lock:
            yield self.store

    def submit(
        self,
        title: str,
        message: str,
        parent_id: str = ROOT_PARENT_ID,
        attachment: str | None = None,
    ) -> str:
        with self.session() as store:
            return submit.submit(
                store,
                title,
                message,
                parent_id,
                attachment,
                title_max=self.settings.title_max_length,
                message_max=self.settings.message_max_length,
            )

    def listing(self, page_number: int) -> ListingPage:
        with self.session() as store:
            return pagination.page(
                store,
                page_number,
                page_size=self.settings.posts_per_page,
                truncate_length=self.settings.listing_truncate_length,
            )

    def thread(self, root_id: str) -> ThreadView | None:
        with self.session() as store:
            return threads.thread(store, root_id)

    def close(self) -> None:
        with self._lock:
            self.store.close()
        logger.info("[Board] store closed")
