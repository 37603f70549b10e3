# tests/services/test_locks.py
import asyncio

import pytest

from scandms.services.locks import DocumentLocks


@pytest.mark.asyncio
async def test_same_document_is_serialised():
    locks = DocumentLocks()
    events = []

    async def work(name):
        async with locks.hold(1):
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    await asyncio.gather(work("a"), work("b"))

    assert events == ["a start", "a end", "b start", "b end"]


@pytest.mark.asyncio
async def test_different_documents_run_concurrently():
    locks = DocumentLocks()
    events = []

    async def work(document_id):
        async with locks.hold(document_id):
            events.append(f"{document_id} start")
            await asyncio.sleep(0.01)
            events.append(f"{document_id} end")

    await asyncio.gather(work(1), work(2))

    assert events[:2] == ["1 start", "2 start"]


@pytest.mark.asyncio
async def test_locks_are_released_after_use():
    locks = DocumentLocks()

    async def work(document_id):
        async with locks.hold(document_id):
            await asyncio.sleep(0)

    await asyncio.gather(*(work(document_id) for document_id in (1, 1, 2, 3)))

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises():
    locks = DocumentLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold(5):
            raise RuntimeError("boom")

    assert len(locks) == 0
    async with locks.hold(5):
        assert len(locks) == 1
