# backend/scandms/services/locks.py
import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class DocumentLocks:
    """One asyncio.Lock per document id.

    Ingestion reads the next page number before inserting, so two uploads
    into the same document must not interleave. Uploads into different
    documents still run concurrently. A lock is dropped once its last
    holder or waiter leaves.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, document_id: int):
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[document_id] -= 1
            if not self._users[document_id]:
                del self._users[document_id]
                del self._locks[document_id]

    def __len__(self) -> int:
        return len(self._locks)
