"""
Pydantic models for API request/response schemas.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# === Request Models ===

class SyncRequest(BaseModel):
    """Optional request body for the sync endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    update_existing: bool = Field(
        False,
        alias="updateExisting",
        description="Backfill missing publish dates instead of syncing new videos",
    )


class PlaylistMappingRequest(BaseModel):
    """Request body for adding a playlist mapping."""
    playlist: str = Field(..., min_length=1, max_length=500, description="Playlist URL or ID")
    playlist_name: Optional[str] = Field(None, max_length=200, description="Display name")
    sector_id: str = Field(..., min_length=1, description="Sector the playlist's videos belong to")


# === Response Models ===

class SyncResponse(BaseModel):
    """Response body for a sync run (errors omitted when empty)."""
    message: str
    synced: int
    skipped: int
    errors: Optional[list[str]] = None


class BackfillResponse(BaseModel):
    """Response body for a publish date backfill (errors omitted when empty)."""
    message: str
    updated: int
    errors: Optional[list[str]] = None


class PlaylistMappingInfo(BaseModel):
    """A configured playlist mapping."""
    id: Optional[str] = None
    playlist_id: str
    playlist_name: Optional[str] = None
    sector_id: str


class PlaylistMappingsResponse(BaseModel):
    """Response body for listing playlist mappings."""
    mappings: list[PlaylistMappingInfo]


class DeleteResponse(BaseModel):
    status: str


class HealthResponse(BaseModel):
    """Response body for health endpoint."""
    status: str
    version: str
    supabase_configured: bool
    youtube_configured: bool


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
