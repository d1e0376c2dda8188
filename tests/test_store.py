from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

import academy.sync.academy_store as academy_store_module
from academy.errors import DuplicateRecordError, MisconfiguredError, StoreError
from academy.sync.academy_store import AcademyStore, MediaRecord, PlaylistMapping


def _api_error(code: str, message: str = "db error") -> APIError:
    return APIError({"message": message, "code": code, "details": None, "hint": None})


def _record(youtube_id: str = "abc123def45") -> MediaRecord:
    return MediaRecord(
        youtube_id=youtube_id,
        title="Intro",
        sector_id="sales",
        created_by="user-1",
        published_at="2019-03-01T12:00:00Z",
    )


def test_insert_unique_violation_raises_duplicate() -> None:
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = _api_error("23505")

    with pytest.raises(DuplicateRecordError):
        AcademyStore(client=client).insert_video(_record())


def test_insert_other_failure_raises_store_error_without_db_detail() -> None:
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = _api_error(
        "23503", "insert or update on table violates foreign key constraint"
    )

    with pytest.raises(StoreError) as exc_info:
        AcademyStore(client=client).insert_video(_record())

    assert not isinstance(exc_info.value, DuplicateRecordError)
    assert exc_info.value.code == "23503"
    assert "foreign key" not in exc_info.value.message


def test_insert_sends_video_columns() -> None:
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.return_value = SimpleNamespace(
        data=[{"id": "row-1", "youtube_id": "abc123def45", "title": "Intro", "sector_id": "sales"}]
    )

    stored = AcademyStore(client=client).insert_video(_record())

    client.table.assert_called_with("videos")
    sent = client.table.return_value.insert.call_args.args[0]
    assert sent["youtube_id"] == "abc123def45"
    assert sent["published_at"] == "2019-03-01T12:00:00Z"
    assert sent["created_by"] == "user-1"
    assert stored.id == "row-1"


def test_existing_ids_page_through_ranges(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(academy_store_module, "READ_PAGE_SIZE", 2)
    client = MagicMock()
    ranged = client.table.return_value.select.return_value.order.return_value.range
    ranged.return_value.execute.side_effect = [
        SimpleNamespace(data=[{"id": "1", "youtube_id": "a"}, {"id": "2", "youtube_id": "b"}]),
        SimpleNamespace(data=[{"id": "3", "youtube_id": "c"}]),
    ]

    ids = AcademyStore(client=client).get_existing_video_ids()

    assert ids == {"a", "b", "c"}
    assert [c.args for c in ranged.call_args_list] == [(0, 1), (2, 3)]


def test_update_published_at_is_conditioned_on_null() -> None:
    client = MagicMock()
    filtered = client.table.return_value.update.return_value.eq.return_value.is_
    filtered.return_value.execute.return_value = SimpleNamespace(data=[])

    updated = AcademyStore(client=client).update_published_at("row-1", "2019-03-01T12:00:00Z")

    assert updated is False
    client.table.return_value.update.assert_called_with({"published_at": "2019-03-01T12:00:00Z"})
    client.table.return_value.update.return_value.eq.assert_called_with("id", "row-1")
    filtered.assert_called_with("published_at", "null")


def test_mapping_read_failure_is_store_error() -> None:
    client = MagicMock()
    client.table.return_value.select.return_value.order.return_value.execute.side_effect = _api_error("PGRST301")

    with pytest.raises(StoreError) as exc_info:
        AcademyStore(client=client).get_playlist_mappings()

    assert exc_info.value.message == "Failed to load playlist mappings"


def test_user_roles_are_listed() -> None:
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.execute.return_value = SimpleNamespace(
        data=[{"role": "admin"}, {"role": "user"}]
    )

    assert AcademyStore(client=client).get_user_roles("user-1") == ["admin", "user"]
    client.table.assert_called_with("user_roles")


def test_mapping_round_trip_from_row() -> None:
    mapping = PlaylistMapping.from_dict(
        {
            "id": "m1",
            "playlist_id": "PL_A",
            "playlist_name": None,
            "sector_id": "sales",
            "created_at": "2024-02-01T10:00:00Z",
        }
    )

    assert mapping.display_name == "PL_A"
    assert mapping.created_at is not None
    assert mapping.to_dict() == {"playlist_id": "PL_A", "playlist_name": None, "sector_id": "sales"}


def test_missing_credentials_is_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    from academy.config import get_settings

    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "")
    get_settings.cache_clear()

    with pytest.raises(MisconfiguredError):
        AcademyStore()


@pytest.mark.parametrize(
    "failure",
    [
        httpx.ConnectError("connection reset"),
        httpx.ReadTimeout("timed out"),
        ValueError("Expecting value: line 1 column 1 (char 0)"),
    ],
)
def test_insert_transport_or_parse_failure_raises_store_error(failure: Exception) -> None:
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = failure

    with pytest.raises(StoreError) as exc_info:
        AcademyStore(client=client).insert_video(_record())

    assert not isinstance(exc_info.value, DuplicateRecordError)
    assert exc_info.value.message == "Failed to insert video abc123def45"
