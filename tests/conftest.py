from __future__ import annotations

from collections.abc import Iterator
from types import SimpleNamespace
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from supabase import AuthError

import academy.sync.academy_store as academy_store_module
import academy.sync.youtube_client as youtube_client_module
from academy.api import routes
from academy.auth import AdminVerifier
from academy.config import get_settings
from academy.errors import DuplicateRecordError, StoreError, YouTubeAPIError
from academy.main import app
from academy.sync.academy_store import MediaRecord, PlaylistMapping
from academy.sync.youtube_client import PlaylistItem, PlaylistPage

ADMIN_TOKEN = "admin-token"
EMPLOYEE_TOKEN = "employee-token"
ADMIN_ID = "11111111-1111-1111-1111-111111111111"
EMPLOYEE_ID = "22222222-2222-2222-2222-222222222222"


@pytest.fixture(autouse=True)
def _academy_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.setenv("SUPABASE_URL", "http://127.0.0.1:9")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "test-anon-key")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")
    monkeypatch.setenv("YOUTUBE_API_KEY", "test-youtube-key")
    get_settings.cache_clear()
    monkeypatch.setattr(academy_store_module, "_store", None)
    monkeypatch.setattr(youtube_client_module, "_client", None)
    yield
    get_settings.cache_clear()


def playlist_item(video_id: str, title: Optional[str] = None, added_at: str = "2030-01-01T00:00:00Z") -> PlaylistItem:
    return PlaylistItem(
        video_id=video_id,
        title=title or f"Video {video_id}",
        description=f"About {video_id}",
        added_at=added_at,
    )


class FakeStore:
    """In-memory stand-in for AcademyStore that records every call."""

    def __init__(
        self,
        mappings: Optional[list[PlaylistMapping]] = None,
        videos: Optional[list[MediaRecord]] = None,
        roles: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.mappings = list(mappings or [])
        self.videos = list(videos or [])
        self.roles = roles if roles is not None else {ADMIN_ID: ["admin"], EMPLOYEE_ID: ["user"]}
        self.calls: list[str] = []
        self.duplicate_on_insert: set[str] = set()
        self.failing_inserts: set[str] = set()
        self._next_id = 1
        for video in self.videos:
            if video.id is None:
                video.id = self._new_id()

    def _new_id(self) -> str:
        value = f"row-{self._next_id}"
        self._next_id += 1
        return value

    def get_playlist_mappings(self) -> list[PlaylistMapping]:
        self.calls.append("get_playlist_mappings")
        return list(self.mappings)

    def add_playlist_mapping(self, mapping: PlaylistMapping) -> PlaylistMapping:
        self.calls.append("add_playlist_mapping")
        if any(m.playlist_id == mapping.playlist_id for m in self.mappings):
            raise DuplicateRecordError("Duplicate record: add playlist mapping", code="23505")
        mapping.id = self._new_id()
        self.mappings.append(mapping)
        return mapping

    def delete_playlist_mapping(self, mapping_id: str) -> bool:
        self.calls.append("delete_playlist_mapping")
        before = len(self.mappings)
        self.mappings = [m for m in self.mappings if m.id != mapping_id]
        return len(self.mappings) < before

    def get_existing_video_ids(self) -> set[str]:
        self.calls.append("get_existing_video_ids")
        return {v.youtube_id for v in self.videos}

    def insert_video(self, record: MediaRecord) -> MediaRecord:
        self.calls.append("insert_video")
        if record.youtube_id in self.failing_inserts:
            raise StoreError(f"Failed to insert video {record.youtube_id}", code="23503")
        if record.youtube_id in self.duplicate_on_insert or any(
            v.youtube_id == record.youtube_id for v in self.videos
        ):
            raise DuplicateRecordError("Duplicate record", code="23505")
        record.id = self._new_id()
        self.videos.append(record)
        return record

    def get_videos_missing_publish_date(self) -> list[MediaRecord]:
        self.calls.append("get_videos_missing_publish_date")
        return [v for v in self.videos if v.published_at is None]

    def update_published_at(self, video_id: str, published_at: str) -> bool:
        self.calls.append("update_published_at")
        for video in self.videos:
            if video.id == video_id and video.published_at is None:
                video.published_at = published_at
                return True
        return False

    def get_user_roles(self, user_id: str) -> list[str]:
        self.calls.append("get_user_roles")
        return list(self.roles.get(user_id, []))

    def get_stats(self) -> dict:
        return {
            "mappings": len(self.mappings),
            "videos": len(self.videos),
            "missing_publish_date": sum(1 for v in self.videos if v.published_at is None),
        }

    def by_youtube_id(self, youtube_id: str) -> MediaRecord:
        return next(v for v in self.videos if v.youtube_id == youtube_id)


class FakeYouTube:
    """Serves pre-built playlist pages; page tokens are page indexes."""

    def __init__(
        self,
        playlists: Optional[dict[str, list[list[PlaylistItem]]]] = None,
        published: Optional[dict[str, str]] = None,
        failures: Optional[dict[tuple[str, int], int]] = None,
    ) -> None:
        self.playlists = playlists or {}
        self.published = published or {}
        self.failures = failures or {}
        self.page_requests: list[tuple[str, int]] = []
        self.lookups: list[list[str]] = []

    @property
    def call_count(self) -> int:
        return len(self.page_requests) + len(self.lookups)

    def list_playlist_items(self, playlist_id: str, page_token: Optional[str] = None) -> PlaylistPage:
        index = int(page_token) if page_token else 0
        self.page_requests.append((playlist_id, index))
        if (playlist_id, index) in self.failures:
            status = self.failures[(playlist_id, index)]
            raise YouTubeAPIError(f"YouTube API returned {status}", upstream_status=status)

        pages = self.playlists.get(playlist_id) or [[]]
        next_token = str(index + 1) if index + 1 < len(pages) else None
        return PlaylistPage(items=list(pages[index]), next_page_token=next_token)

    def get_published_dates(self, video_ids: list[str]) -> dict[str, str]:
        self.lookups.append(list(video_ids))
        return {vid: self.published[vid] for vid in video_ids if vid in self.published}


class _TokenRejected(AuthError):
    def __init__(self) -> None:
        Exception.__init__(self, "invalid JWT")
        self.message = "invalid JWT"
        self.code = "bad_jwt"
        self.status = 401


class FakeAuth:
    """Mimics supabase `client.auth.get_user`."""

    def __init__(self) -> None:
        self.users = {
            ADMIN_TOKEN: SimpleNamespace(id=ADMIN_ID, email="admin@example.com"),
            EMPLOYEE_TOKEN: SimpleNamespace(id=EMPLOYEE_ID, email="employee@example.com"),
        }
        self.calls = 0

    def get_user(self, token: str) -> SimpleNamespace:
        self.calls += 1
        if token not in self.users:
            raise _TokenRejected()
        return SimpleNamespace(user=self.users[token])


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_youtube() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def client(fake_store: FakeStore, fake_youtube: FakeYouTube, fake_auth: FakeAuth) -> Iterator[TestClient]:
    app.dependency_overrides[routes.get_store] = lambda: fake_store
    app.dependency_overrides[routes.get_youtube] = lambda: fake_youtube
    app.dependency_overrides[routes.get_admin_verifier] = lambda: AdminVerifier(
        fake_store, auth_client=fake_auth
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def employee_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {EMPLOYEE_TOKEN}"}
