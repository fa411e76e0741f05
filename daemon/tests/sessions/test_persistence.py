"""Tests for session persistence module."""

import json
import os
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pairgate.errors import StorageError
from pairgate.sessions.models import Session
from pairgate.sessions.persistence import SessionPersistence

CREATED = datetime(2025, 1, 27, 10, 30, tzinfo=timezone.utc)


def make_session(session_id: str, offset: int = 0) -> Session:
    created = CREATED + timedelta(seconds=offset)
    return Session(
        id=session_id,
        token=session_id * 4,
        device_name=f"device-{session_id}",
        created_at=created,
        last_used_at=created,
        expires_at=created + timedelta(days=30),
    )


class TestLoad:
    """Tests for load method."""

    @pytest.mark.asyncio
    async def test_returns_empty_list_if_file_missing(self, tmp_path: Path):
        """Returns empty list if file doesn't exist."""
        persistence = SessionPersistence(path=tmp_path / "nonexistent.json")
        assert await persistence.load() == []

    @pytest.mark.asyncio
    async def test_loads_sessions_from_file(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        path.write_text(json.dumps([make_session("a1").to_dict()]))

        result = await SessionPersistence(path=path).load()

        assert len(result) == 1
        assert result[0].id == "a1"
        assert result[0].created_at == CREATED

    @pytest.mark.asyncio
    async def test_corrupted_json_returns_empty(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        path.write_text("not valid json {{{")

        assert await SessionPersistence(path=path).load() == []

    @pytest.mark.asyncio
    async def test_invalid_utf8_returns_empty(self, tmp_path: Path):
        """Undecodable bytes count as a corrupt file."""
        path = tmp_path / "sessions.json"
        path.write_bytes(b"\xff\xfe[garbage\x80")

        assert await SessionPersistence(path=path).load() == []

    @pytest.mark.asyncio
    async def test_non_list_returns_empty(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        path.write_text(json.dumps({"sessions": []}))

        assert await SessionPersistence(path=path).load() == []

    @pytest.mark.asyncio
    async def test_skips_malformed_entries(self, tmp_path: Path):
        """Malformed records are skipped, valid ones kept."""
        path = tmp_path / "sessions.json"
        path.write_text(
            json.dumps(
                [
                    make_session("a1").to_dict(),
                    {"id": "broken"},
                    "not a dict",
                    {**make_session("b2").to_dict(), "expiresAt": "garbage"},
                    make_session("c3").to_dict(),
                ]
            )
        )

        result = await SessionPersistence(path=path).load()

        assert [s.id for s in result] == ["a1", "c3"]

    @pytest.mark.asyncio
    async def test_read_error_returns_empty(self, tmp_path: Path):
        def fail_read(p):
            raise OSError("permission denied")

        persistence = SessionPersistence(
            path=tmp_path / "sessions.json",
            file_ops={
                "exists": lambda p: True,
                "read": fail_read,
                "write": lambda p, c: None,
                "mkdir": lambda p: None,
            },
        )

        assert await persistence.load() == []


class TestSave:
    """Tests for save method."""

    @pytest.mark.asyncio
    async def test_writes_ordered_array(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        persistence = SessionPersistence(path=path)

        await persistence.save([make_session("a1"), make_session("b2", offset=5)])

        data = json.loads(path.read_text())
        assert isinstance(data, list)
        assert [r["id"] for r in data] == ["a1", "b2"]
        assert data[0]["createdAt"] == "2025-01-27T10:30:00.000Z"

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "sessions.json"

        await SessionPersistence(path=path).save([make_session("a1")])

        assert path.exists()

    @pytest.mark.asyncio
    async def test_file_is_owner_only(self, tmp_path: Path):
        """Session file holds tokens, so only the owner may read it."""
        path = tmp_path / "sessions.json"

        await SessionPersistence(path=path).save([make_session("a1")])

        mode = stat.S_IMODE(os.stat(path).st_mode)
        assert mode == 0o600

    @pytest.mark.asyncio
    async def test_overwrites_fully(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        persistence = SessionPersistence(path=path)

        await persistence.save([make_session("a1"), make_session("b2")])
        await persistence.save([make_session("b2")])

        assert [r["id"] for r in json.loads(path.read_text())] == ["b2"]

    @pytest.mark.asyncio
    async def test_no_temp_file_left(self, tmp_path: Path):
        path = tmp_path / "sessions.json"

        await SessionPersistence(path=path).save([])

        assert list(tmp_path.glob("*.tmp")) == []
        assert json.loads(path.read_text()) == []

    @pytest.mark.asyncio
    async def test_roundtrip(self, tmp_path: Path):
        path = tmp_path / "sessions.json"
        persistence = SessionPersistence(path=path)
        original = make_session("a1")
        original.origin_address = "10.0.0.5"
        original.user_agent = "PairApp/1.0"

        await persistence.save([original])
        (loaded,) = await persistence.load()

        assert loaded == original

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path: Path):
        def fail_write(p, content):
            raise OSError("disk full")

        persistence = SessionPersistence(
            path=tmp_path / "sessions.json",
            file_ops={
                "exists": lambda p: False,
                "read": lambda p: "",
                "write": fail_write,
                "mkdir": lambda p: None,
            },
        )

        with pytest.raises(StorageError):
            await persistence.save([make_session("a1")])
