"""
Playlist sync package.

Pulls videos from admin-mapped YouTube playlists into the academy's videos
table, with de-duplication against stored youtube_ids and a backfill mode for
missing publish dates.
"""

from academy.sync.academy_store import AcademyStore, MediaRecord, PlaylistMapping
from academy.sync.youtube_client import PlaylistItem, PlaylistPage, YouTubeClient
from academy.sync.orchestrator import BackfillOutcome, PlaylistSyncOrchestrator, SyncOutcome

__all__ = [
    "AcademyStore",
    "MediaRecord",
    "PlaylistMapping",
    "PlaylistItem",
    "PlaylistPage",
    "YouTubeClient",
    "BackfillOutcome",
    "PlaylistSyncOrchestrator",
    "SyncOutcome",
]
