"""
Supabase CRUD operations for the academy tables touched by playlist sync.

Tables:
- youtube_playlist_mappings: playlist -> sector associations managed by admins
- videos: training videos; youtube_id is unique
- user_roles: role assignments, read to authorize admin-only operations
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import create_client, Client

from academy.config import get_settings
from academy.errors import DuplicateRecordError, MisconfiguredError, StoreError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

# PostgREST caps rows per response (1000 by default), so bulk reads page through ranges
READ_PAGE_SIZE = 1000


@dataclass
class PlaylistMapping:
    """An admin-configured association between a playlist and a sector."""

    playlist_id: str
    sector_id: str
    playlist_name: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.playlist_name or self.playlist_id

    def to_dict(self) -> dict:
        """Convert to dictionary for Supabase insert."""
        return {
            "playlist_id": self.playlist_id,
            "playlist_name": self.playlist_name,
            "sector_id": self.sector_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlaylistMapping":
        """Create from Supabase row."""
        return cls(
            playlist_id=data["playlist_id"],
            sector_id=data["sector_id"],
            playlist_name=data.get("playlist_name"),
            id=data.get("id"),
            created_at=_parse_datetime(data.get("created_at")),
        )


@dataclass
class MediaRecord:
    """A row of the videos table."""

    youtube_id: str
    title: str
    sector_id: str
    created_by: Optional[str] = None
    description: Optional[str] = None
    published_at: Optional[str] = None  # ISO-8601 as returned by YouTube
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for Supabase insert."""
        return {
            "title": self.title,
            "description": self.description,
            "youtube_id": self.youtube_id,
            "sector_id": self.sector_id,
            "created_by": self.created_by,
            "published_at": self.published_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MediaRecord":
        """Create from Supabase row."""
        return cls(
            youtube_id=data["youtube_id"],
            title=data.get("title") or "",
            sector_id=data.get("sector_id") or "",
            created_by=data.get("created_by"),
            description=data.get("description"),
            published_at=data.get("published_at"),
            id=data.get("id"),
            created_at=_parse_datetime(data.get("created_at")),
        )


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string."""
    if not value:
        return None
    try:
        # Handle both Z suffix and +00:00
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


class AcademyStore:
    """
    Supabase-backed store for playlist mappings, videos and roles.

    Uses the service-role key, so row-level security does not apply. Callers
    are responsible for checking the requesting user is an admin first.
    """

    MAPPINGS_TABLE = "youtube_playlist_mappings"
    VIDEOS_TABLE = "videos"
    ROLES_TABLE = "user_roles"

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        """
        Initialize the store.

        Args:
            supabase_url: Supabase project URL (or from settings)
            supabase_key: Supabase service role key (or from settings)
            client: Pre-built Supabase client (skips credential checks)
        """
        self._client: Optional[Client] = client
        if client is not None:
            return

        settings = get_settings()
        self.url = supabase_url or settings.supabase_url
        self.key = supabase_key or settings.supabase_service_role_key

        if not self.url or not self.key:
            raise MisconfiguredError("Supabase credentials not configured")

    @property
    def client(self) -> Client:
        """Lazy-load Supabase client."""
        if self._client is None:
            self._client = create_client(self.url, self.key)
        return self._client

    def _execute(self, query: Any, action: str):
        """
        Run a PostgREST query, translating failures to StoreError.

        Covers API errors, transport errors (connection, timeout) and
        response bodies that fail to parse.
        """
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateRecordError(f"Duplicate record: {action}", code=e.code) from e
            logger.error(f"Supabase error while trying to {action}: {e.code} {e.message}")
            raise StoreError(f"Failed to {action}", code=e.code) from e
        except httpx.HTTPError as e:
            logger.error(f"Supabase request failed while trying to {action}: {e!r}")
            raise StoreError(f"Failed to {action}") from e
        except ValueError as e:
            logger.error(f"Unreadable Supabase response while trying to {action}: {e}")
            raise StoreError(f"Failed to {action}") from e

    def _select_all(
        self, table: str, columns: str, action: str, null_columns: tuple[str, ...] = ()
    ) -> list[dict]:
        """Read every matching row, following PostgREST ranges."""
        rows: list[dict] = []
        start = 0
        while True:
            query = self.client.table(table).select(columns)
            for column in null_columns:
                query = query.is_(column, "null")
            query = query.order("id").range(start, start + READ_PAGE_SIZE - 1)

            result = self._execute(query, action)
            batch = result.data or []
            rows.extend(batch)
            if len(batch) < READ_PAGE_SIZE:
                return rows
            start += READ_PAGE_SIZE

    # === Playlist mappings ===

    def get_playlist_mappings(self) -> list[PlaylistMapping]:
        """Get all configured playlist mappings, newest first."""
        query = (
            self.client.table(self.MAPPINGS_TABLE)
            .select("id, playlist_id, playlist_name, sector_id, created_at")
            .order("created_at", desc=True)
        )
        result = self._execute(query, "load playlist mappings")
        return [PlaylistMapping.from_dict(row) for row in result.data or []]

    def add_playlist_mapping(self, mapping: PlaylistMapping) -> PlaylistMapping:
        """
        Insert a new playlist mapping.

        Raises:
            DuplicateRecordError: If the playlist is already mapped
        """
        query = self.client.table(self.MAPPINGS_TABLE).insert(mapping.to_dict())
        result = self._execute(query, "add playlist mapping")
        if result.data:
            return PlaylistMapping.from_dict(result.data[0])
        return mapping

    def delete_playlist_mapping(self, mapping_id: str) -> bool:
        """
        Delete a playlist mapping.

        Returns:
            True if a row was deleted
        """
        query = self.client.table(self.MAPPINGS_TABLE).delete().eq("id", mapping_id)
        result = self._execute(query, "delete playlist mapping")
        return bool(result.data)

    # === Videos ===

    def get_existing_video_ids(self) -> set[str]:
        """Get the youtube_id of every stored video."""
        rows = self._select_all(self.VIDEOS_TABLE, "id, youtube_id", "load existing videos")
        return {row["youtube_id"] for row in rows if row.get("youtube_id")}

    def insert_video(self, record: MediaRecord) -> MediaRecord:
        """
        Insert a new video.

        Raises:
            DuplicateRecordError: If a video with the same youtube_id exists
            StoreError: For any other database failure
        """
        query = self.client.table(self.VIDEOS_TABLE).insert(record.to_dict())
        result = self._execute(query, f"insert video {record.youtube_id}")
        if result.data:
            return MediaRecord.from_dict(result.data[0])
        return record

    def get_videos_missing_publish_date(self) -> list[MediaRecord]:
        """Get all videos whose published_at is null."""
        rows = self._select_all(
            self.VIDEOS_TABLE,
            "id, youtube_id, title, sector_id, created_by, published_at",
            "load videos without publish date",
            null_columns=("published_at",),
        )
        return [MediaRecord.from_dict(row) for row in rows if row.get("youtube_id")]

    def update_published_at(self, video_id: str, published_at: str) -> bool:
        """
        Set published_at on a video that does not have one yet.

        The update is filtered on published_at IS NULL, so an existing
        timestamp is never overwritten.

        Returns:
            True if the row was updated
        """
        query = (
            self.client.table(self.VIDEOS_TABLE)
            .update({"published_at": published_at})
            .eq("id", video_id)
            .is_("published_at", "null")
        )
        result = self._execute(query, f"update publish date for video {video_id}")
        return bool(result.data)

    # === Roles ===

    def get_user_roles(self, user_id: str) -> list[str]:
        """Get every role assigned to a user."""
        query = self.client.table(self.ROLES_TABLE).select("role").eq("user_id", user_id)
        result = self._execute(query, "load user roles")
        return [row["role"] for row in result.data or [] if row.get("role")]

    # === Stats ===

    def get_stats(self) -> dict:
        """
        Get sync-related statistics.

        Returns:
            Dictionary with mapping, video and missing-date counts
        """
        def count(table: str, null_column: Optional[str] = None) -> int:
            query = self.client.table(table).select("id", count="exact")
            if null_column:
                query = query.is_(null_column, "null")
            result = self._execute(query.limit(1), f"count {table}")
            return result.count or 0

        return {
            "mappings": count(self.MAPPINGS_TABLE),
            "videos": count(self.VIDEOS_TABLE),
            "missing_publish_date": count(self.VIDEOS_TABLE, "published_at"),
        }


_store: Optional[AcademyStore] = None


def get_academy_store() -> AcademyStore:
    """Get the singleton academy store instance."""
    global _store
    if _store is None:
        _store = AcademyStore()
    return _store
