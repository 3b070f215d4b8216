from collections.abc import Iterator

from app.store.base import KVStore


class MemoryStore(KVStore):
    """Process-local store. Nothing survives a restart."""

    def __init__(self):
        self._data: dict[bytes, bytes] = {}

    def put(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)

    def get(self, key: bytes) -> bytes | None:
        return self._data.get(bytes(key))

    def scan_all(self) -> Iterator[tuple[bytes, bytes]]:
        # Snapshot so a put during the scan does not break iteration
        yield from list(self._data.items())

    def __len__(self) -> int:
        return len(self._data)
