"""
Playlist sync orchestrator.

Coordinates:
1. Loading playlist -> sector mappings
2. Comparison with videos already in the store (request-scoped known-id set)
3. Paginated playlist discovery from the YouTube Data API
4. Publish date resolution via batched videos.list lookups
5. Video inserts, with unique violations counted as skips
6. Backfill of missing publish dates on stored videos
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from academy.errors import DuplicateRecordError, StoreError, YouTubeAPIError
from academy.sync.academy_store import AcademyStore, MediaRecord, PlaylistMapping
from academy.sync.youtube_client import PlaylistItem, PlaylistPage, YouTubeClient

logger = logging.getLogger(__name__)

NO_MAPPINGS_MESSAGE = "No playlists configured. Add playlist mappings first."


@dataclass
class SyncOutcome:
    """Counts and error strings from a sync run, or any part of one."""

    synced: int = 0
    skipped: int = 0
    playlists: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "SyncOutcome") -> "SyncOutcome":
        self.playlists += other.playlists
        self.synced += other.synced
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self

    @property
    def message(self) -> str:
        if self.playlists == 0:
            return NO_MAPPINGS_MESSAGE
        if self.synced > 0:
            return f"Sync complete! {self.synced} video(s) added."
        return "No new videos found."

    def __str__(self) -> str:
        return (
            f"Synced: {self.synced}\n"
            f"Skipped: {self.skipped}\n"
            f"Errors: {len(self.errors)}"
        )


@dataclass
class BackfillOutcome:
    """Results from a publish date backfill."""

    candidates: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.updated > 0:
            return f"Publish dates updated for {self.updated} video(s)."
        if self.candidates == 0:
            return "All videos already have a publish date."
        return "No publish dates could be resolved."

    def __str__(self) -> str:
        return (
            f"Missing publish date: {self.candidates}\n"
            f"Updated: {self.updated}\n"
            f"Errors: {len(self.errors)}"
        )


class PlaylistSyncOrchestrator:
    """
    Synchronizes videos from mapped YouTube playlists into the store.

    Usage:
        orchestrator = PlaylistSyncOrchestrator(store, youtube)

        # Insert new videos from every mapped playlist
        outcome = orchestrator.sync(created_by=user_id)

        # Fill in published_at where it is missing
        outcome = orchestrator.backfill_publish_dates()

    Nothing is retried within a run; failures are reported in the outcome
    and a new run is the retry.
    """

    def __init__(self, store: AcademyStore, youtube: Optional[YouTubeClient] = None):
        """
        Initialize the orchestrator.

        Args:
            store: AcademyStore used for mappings, videos and inserts
            youtube: YouTubeClient (created from settings on first use if not provided)
        """
        self.store = store
        self._youtube = youtube

    @property
    def youtube(self) -> YouTubeClient:
        """Lazy-load YouTube client."""
        if self._youtube is None:
            self._youtube = YouTubeClient()
        return self._youtube

    def sync(self, created_by: Optional[str] = None) -> SyncOutcome:
        """
        Run a sync over every configured playlist mapping.

        Args:
            created_by: User ID recorded on inserted videos

        Returns:
            SyncOutcome with totals and per-playlist / per-video errors
        """
        outcome = SyncOutcome()

        mappings = self.store.get_playlist_mappings()
        if not mappings:
            logger.info("No playlist mappings found")
            return outcome

        logger.info(f"Found {len(mappings)} playlist mappings")

        known_ids = self.store.get_existing_video_ids()
        logger.info(f"Found {len(known_ids)} existing videos")

        for mapping in mappings:
            outcome.merge(self._sync_playlist(mapping, known_ids, created_by))

        logger.info(
            f"Sync complete: {outcome.synced} synced, {outcome.skipped} skipped, "
            f"{len(outcome.errors)} errors"
        )
        return outcome

    def _sync_playlist(
        self,
        mapping: PlaylistMapping,
        known_ids: set[str],
        created_by: Optional[str],
    ) -> SyncOutcome:
        """Walk every page of one playlist. API failures abort this playlist only."""
        outcome = SyncOutcome(playlists=1)
        page_token: Optional[str] = None
        pages = 0

        logger.info(f"Processing playlist: {mapping.playlist_id}")

        while True:
            try:
                page = self.youtube.list_playlist_items(mapping.playlist_id, page_token)
            except YouTubeAPIError as e:
                outcome.errors.append(f"Playlist {mapping.display_name}: {e.summary}")
                logger.warning(
                    f"Stopping playlist {mapping.playlist_id} after {pages} page(s): {e}"
                )
                break

            pages += 1
            outcome.merge(self._sync_page(page, mapping, known_ids, created_by))

            if not page.next_page_token:
                break
            page_token = page.next_page_token

        return outcome

    def _sync_page(
        self,
        page: PlaylistPage,
        mapping: PlaylistMapping,
        known_ids: set[str],
        created_by: Optional[str],
    ) -> SyncOutcome:
        """Insert the unseen items of one playlist page."""
        outcome = SyncOutcome()
        new_items: list[PlaylistItem] = []

        for item in page.items:
            if item.video_id in known_ids:
                outcome.skipped += 1
            else:
                new_items.append(item)

        if not new_items:
            return outcome

        published = self.youtube.get_published_dates([item.video_id for item in new_items])

        for item in new_items:
            # Same video may repeat within a page
            if item.video_id in known_ids:
                outcome.skipped += 1
                continue

            record = MediaRecord(
                youtube_id=item.video_id,
                title=item.title,
                description=item.description,
                sector_id=mapping.sector_id,
                created_by=created_by,
                published_at=published.get(item.video_id),
            )

            try:
                self.store.insert_video(record)
            except DuplicateRecordError:
                logger.info(f"Video {item.video_id} already exists, skipping")
                known_ids.add(item.video_id)
                outcome.skipped += 1
                continue
            except StoreError as e:
                logger.error(f"Failed to insert video {item.video_id}: {e}")
                outcome.errors.append(f"Video {item.title}: {e.message}")
                continue

            logger.info(f"Synced video: {item.title}")
            known_ids.add(item.video_id)
            outcome.synced += 1

        return outcome

    def backfill_publish_dates(self) -> BackfillOutcome:
        """
        Set published_at on stored videos that lack it.

        Only rows whose published_at is null are candidates, and the store
        update is conditioned on that too.

        Returns:
            BackfillOutcome with counts and per-video errors
        """
        outcome = BackfillOutcome()

        records = self.store.get_videos_missing_publish_date()
        outcome.candidates = len(records)
        if not records:
            logger.info("No videos missing a publish date")
            return outcome

        logger.info(f"Found {len(records)} videos without a publish date")

        published = self.youtube.get_published_dates([r.youtube_id for r in records])

        for record in records:
            published_at = published.get(record.youtube_id)
            if not published_at or record.id is None:
                continue

            try:
                if self.store.update_published_at(record.id, published_at):
                    outcome.updated += 1
            except StoreError as e:
                logger.error(f"Failed to update publish date for {record.youtube_id}: {e}")
                outcome.errors.append(f"Video {record.title or record.youtube_id}: {e.message}")

        logger.info(
            f"Backfill complete: {outcome.updated} of {outcome.candidates} updated, "
            f"{len(outcome.errors)} errors"
        )
        return outcome

    def get_status(self) -> dict:
        """Get current sync status."""
        try:
            return self.store.get_stats()
        except StoreError as e:
            return {"error": e.message}
