from abc import ABC, abstractmethod
from collections.abc import Iterator


class KVStore(ABC):
    """Durable key -> bytes mapping with unordered full scans.

    Single-key put/get must be atomic. Nothing stronger is required: callers
    that need several keys to move together hold the board session lock.
    """

    @abstractmethod
    def put(self, key: bytes, value: bytes) -> None: ...

    @abstractmethod
    def get(self, key: bytes) -> bytes | None: ...

    @abstractmethod
    def scan_all(self) -> Iterator[tuple[bytes, bytes]]:
        """Yield every (key, value) pair once, in no particular order."""

    def contains(self, key: bytes) -> bool:
        return self.get(key) is not None

    def close(self) -> None:
        pass
