"""Tests for the identity store contract (in-memory backend)."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from faceid import memory_store
from faceid.db.repositories import identity_repo
from faceid.exceptions import DuplicatePhoneError, DuplicateUsernameError, NotFoundError
from faceid.models.face import BoundingBox, FaceReference


def _reference(x: float = 10, width: float = 100) -> FaceReference:
    return FaceReference(
        bounding_box=BoundingBox(x=x, y=20, width=width, height=120),
        captured_at=datetime.now(timezone.utc),
        confidence=0.95,
    )


class TestCreateIdentity:

    @pytest.mark.asyncio
    async def test_create_and_lookup(self):
        created = await identity_repo.create_identity("13800000000", "Alice")
        assert created.face_enrolled is False
        assert created.face_reference is None

        by_phone = await identity_repo.get_by_phone("13800000000")
        by_name = await identity_repo.get_by_username("Alice")
        assert by_phone.identity_id == created.identity_id
        assert by_name.identity_id == created.identity_id

    @pytest.mark.asyncio
    async def test_duplicate_phone(self):
        await identity_repo.create_identity("13800000000", "Alice")
        with pytest.raises(DuplicatePhoneError):
            await identity_repo.create_identity("13800000000", "Someone")

    @pytest.mark.asyncio
    async def test_duplicate_username_is_case_sensitive(self):
        await identity_repo.create_identity("13800000000", "Alice")
        with pytest.raises(DuplicateUsernameError):
            await identity_repo.create_identity("13900000000", "Alice")
        # A different case is a different username
        other = await identity_repo.create_identity("13900000000", "alice")
        assert other.username == "alice"

    @pytest.mark.asyncio
    async def test_concurrent_creates_for_same_phone(self):
        # All creates are queued on the store lock before any of them runs
        async with memory_store._lock:
            tasks = [
                asyncio.create_task(identity_repo.create_identity("13900000001", name))
                for name in ("First", "Second", "Third")
            ]
            await asyncio.sleep(0)
            assert not any(task.done() for task in tasks)
        results = await asyncio.gather(*tasks, return_exceptions=True)
        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 2
        assert all(isinstance(f, DuplicatePhoneError) for f in failures)
        stored = await identity_repo.get_by_phone("13900000001")
        assert stored.identity_id == successes[0].identity_id

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        created = await identity_repo.create_identity("13800000000", "Alice")
        created.username = "Mallory"
        stored = await identity_repo.get_by_phone("13800000000")
        assert stored.username == "Alice"


class TestSetFaceReference:

    @pytest.mark.asyncio
    async def test_unknown_phone(self):
        with pytest.raises(NotFoundError):
            await identity_repo.set_face_reference("13800000000", _reference())

    @pytest.mark.asyncio
    async def test_sets_enrolled_and_refreshes_updated_at(self):
        created = await identity_repo.create_identity("13800000000", "Alice")
        updated = await identity_repo.set_face_reference("13800000000", _reference())
        assert updated.face_enrolled is True
        assert updated.face_reference.bounding_box.width == 100
        assert updated.updated_at >= created.updated_at
        assert updated.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_last_writer_wins(self):
        await identity_repo.create_identity("13800000000", "Alice")
        await identity_repo.set_face_reference("13800000000", _reference(x=1))
        await identity_repo.set_face_reference("13800000000", _reference(x=2))
        stored = await identity_repo.get_by_phone("13800000000")
        assert stored.face_reference.bounding_box.x == 2
