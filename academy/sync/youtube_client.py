"""
YouTube Data API v3 client for playlist discovery and publish date lookups.

Two endpoints are used:
- playlistItems.list: paginated with nextPageToken, up to 50 items per page
- videos.list: batched lookup by id, up to 50 ids per call

The API key is passed as the `key` query parameter and never leaves the server.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import requests

from academy.config import get_settings
from academy.errors import MisconfiguredError, YouTubeAPIError

logger = logging.getLogger(__name__)

# API hard limits for maxResults and ids-per-request
MAX_PAGE_SIZE = 50
MAX_BATCH_SIZE = 50

_PLAYLIST_URL_PATTERNS = [
    re.compile(r"[?&]list=([a-zA-Z0-9_-]+)"),
    re.compile(r"playlist\?list=([a-zA-Z0-9_-]+)"),
]
_BARE_PLAYLIST_ID = re.compile(r"^[a-zA-Z0-9_-]{10,}$")


def extract_playlist_id(value: str) -> Optional[str]:
    """
    Extract a playlist ID from a YouTube URL or a bare ID.

    Args:
        value: A playlist URL (anything with a `list=` parameter) or an ID

    Returns:
        The playlist ID, or None if the value is not recognizable
    """
    if not value or not isinstance(value, str):
        return None

    for pattern in _PLAYLIST_URL_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)

    cleaned = value.strip()
    if _BARE_PLAYLIST_ID.match(cleaned):
        return cleaned
    return None


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    """Split a sequence into lists of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


@dataclass
class PlaylistItem:
    """A single entry of a playlist page."""

    video_id: str
    title: str
    description: Optional[str] = None
    added_at: Optional[str] = None  # When the video was added to the playlist, not its publish date

    @classmethod
    def from_api(cls, data: dict) -> Optional["PlaylistItem"]:
        """Build from a playlistItems resource; None if it has no video id."""
        snippet = data.get("snippet") or {}
        resource = snippet.get("resourceId") or {}
        video_id = resource.get("videoId") or (data.get("contentDetails") or {}).get("videoId")
        if not video_id:
            return None
        return cls(
            video_id=video_id,
            title=snippet.get("title") or "Untitled",
            description=snippet.get("description") or None,
            added_at=snippet.get("publishedAt"),
        )


@dataclass
class PlaylistPage:
    """One page of playlistItems.list results."""

    items: list[PlaylistItem] = field(default_factory=list)
    next_page_token: Optional[str] = None


class YouTubeClient:
    """
    Thin client over the YouTube Data API.

    Usage:
        client = YouTubeClient()

        page = client.list_playlist_items("PLxxxx")
        while True:
            ...
            if not page.next_page_token:
                break
            page = client.list_playlist_items("PLxxxx", page.next_page_token)

        dates = client.get_published_dates(["dQw4w9WgXcQ", ...])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: YouTube Data API key (or from settings)
            base_url: API root URL (or from settings)
            page_size: maxResults for playlist pages, capped at 50
            batch_size: ids per videos.list call, capped at 50
            timeout: Per-request timeout in seconds
            session: requests.Session to reuse (created if not provided)
        """
        settings = get_settings()
        self.api_key = api_key or settings.youtube_api_key

        if not self.api_key:
            raise MisconfiguredError("YouTube API key not configured")

        self.base_url = (base_url or settings.youtube_api_base_url).rstrip("/")
        self.page_size = min(page_size or settings.youtube_page_size, MAX_PAGE_SIZE)
        self.batch_size = min(batch_size or settings.youtube_batch_size, MAX_BATCH_SIZE)
        self.timeout = timeout or settings.youtube_request_timeout
        self.session = session or requests.Session()

    def _make_request(self, endpoint: str, params: dict) -> dict:
        """GET an API endpoint, raising YouTubeAPIError on any failure."""
        url = f"{self.base_url}/{endpoint}"
        query = dict(params)
        query["key"] = self.api_key

        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"YouTube request to {endpoint} failed: {e}")
            raise YouTubeAPIError(f"YouTube API unreachable ({endpoint})") from e

        if response.status_code != 200:
            logger.error(
                f"YouTube API error {response.status_code} on {endpoint}: "
                f"{response.text[:300]}"
            )
            raise YouTubeAPIError(
                f"YouTube API returned {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"YouTube API sent an unreadable body on {endpoint}: {response.text[:300]}")
            raise YouTubeAPIError(
                f"YouTube API returned invalid JSON ({endpoint})", reason="invalid response"
            ) from e

        if not isinstance(data, dict):
            logger.error(f"YouTube API sent a {type(data).__name__} body on {endpoint}")
            raise YouTubeAPIError(
                f"YouTube API returned an unexpected body ({endpoint})", reason="invalid response"
            )

        return data

    def list_playlist_items(
        self, playlist_id: str, page_token: Optional[str] = None
    ) -> PlaylistPage:
        """
        Fetch one page of a playlist.

        Args:
            playlist_id: YouTube playlist ID (PLxxxxxx)
            page_token: Continuation token from the previous page

        Returns:
            PlaylistPage with parsed items and the next page token (if any)
        """
        params = {
            "part": "snippet",
            "playlistId": playlist_id,
            "maxResults": self.page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        data = self._make_request("playlistItems", params)

        items = []
        for raw in data.get("items") or []:
            item = PlaylistItem.from_api(raw)
            if item is None:
                logger.debug(f"Ignoring playlist entry without video id in {playlist_id}")
                continue
            items.append(item)

        logger.info(f"Received {len(items)} items from playlist {playlist_id}")
        return PlaylistPage(items=items, next_page_token=data.get("nextPageToken") or None)

    def get_published_dates(self, video_ids: Sequence[str]) -> dict[str, str]:
        """
        Look up authoritative publish timestamps for videos.

        Issues one videos.list call per chunk of `batch_size` ids. A failed
        chunk is logged and left out of the result, so callers see the
        affected ids as unresolved.

        Args:
            video_ids: YouTube video IDs

        Returns:
            Mapping of video ID to ISO-8601 publish timestamp
        """
        published: dict[str, str] = {}
        unique_ids = list(dict.fromkeys(video_ids))

        for chunk in chunked(unique_ids, self.batch_size):
            try:
                data = self._make_request(
                    "videos",
                    {"part": "snippet", "id": ",".join(chunk), "maxResults": len(chunk)},
                )
            except YouTubeAPIError as e:
                logger.warning(f"Publish date lookup failed for {len(chunk)} videos: {e}")
                continue

            for video in data.get("items") or []:
                published_at = (video.get("snippet") or {}).get("publishedAt")
                if video.get("id") and published_at:
                    published[video["id"]] = published_at

        missing = len(unique_ids) - len(published)
        if missing:
            logger.info(f"No publish date resolved for {missing} of {len(unique_ids)} videos")
        return published


_client: Optional[YouTubeClient] = None


def get_youtube_client() -> YouTubeClient:
    """Get the singleton YouTube client instance."""
    global _client
    if _client is None:
        _client = YouTubeClient()
    return _client
