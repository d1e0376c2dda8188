"""
API route handlers for the academy backend.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Header

from academy import __version__
from academy.api.models import (
    BackfillResponse,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    PlaylistMappingInfo,
    PlaylistMappingRequest,
    PlaylistMappingsResponse,
    SyncRequest,
    SyncResponse,
)
from academy.auth import AdminVerifier, AuthenticatedUser, extract_bearer_token
from academy.config import get_settings
from academy.errors import (
    AcademyError,
    ConflictError,
    DuplicateRecordError,
    InternalServerError,
    InvalidRequestError,
    NotFoundError,
)
from academy.sync.academy_store import AcademyStore, PlaylistMapping, get_academy_store
from academy.sync.orchestrator import PlaylistSyncOrchestrator
from academy.sync.youtube_client import YouTubeClient, extract_playlist_id, get_youtube_client

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# === Dependencies ===

def require_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Reject requests without a bearer token before any other work."""
    return extract_bearer_token(authorization)


def get_store() -> AcademyStore:
    return get_academy_store()


def get_youtube() -> YouTubeClient:
    """YouTube client; raises MisconfiguredError when no API key is set."""
    return get_youtube_client()


def get_admin_verifier(store: AcademyStore = Depends(get_store)) -> AdminVerifier:
    return AdminVerifier(store)


def require_admin(
    token: str = Depends(require_bearer_token),
    verifier: AdminVerifier = Depends(get_admin_verifier),
) -> AuthenticatedUser:
    """Resolve the caller and require the admin role."""
    return verifier.verify(token)


# === Sync ===

@router.post(
    "/sync-youtube-playlist",
    response_model=Union[SyncResponse, BackfillResponse],
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
def sync_youtube_playlist(
    payload: Optional[SyncRequest] = None,
    token: str = Depends(require_bearer_token),
    youtube: YouTubeClient = Depends(get_youtube),
    verifier: AdminVerifier = Depends(get_admin_verifier),
    store: AcademyStore = Depends(get_store),
):
    """
    Sync videos from every mapped YouTube playlist.

    Requires an admin bearer token. With `{"updateExisting": true}` the
    endpoint instead backfills missing publish dates on stored videos.
    Per-playlist and per-video failures are reported in `errors` with a
    200 status; anything unexpected aborts the run with a 500.
    """
    try:
        user = verifier.verify(token)
        orchestrator = PlaylistSyncOrchestrator(store, youtube)

        if payload is not None and payload.update_existing:
            logger.info(f"Publish date backfill requested by {user.id}")
            backfill = orchestrator.backfill_publish_dates()
            return BackfillResponse(
                message=backfill.message,
                updated=backfill.updated,
                errors=backfill.errors or None,
            )

        logger.info(f"Playlist sync requested by {user.id}")
        outcome = orchestrator.sync(created_by=user.id)
        return SyncResponse(
            message=outcome.message,
            synced=outcome.synced,
            skipped=outcome.skipped,
            errors=outcome.errors or None,
        )

    except AcademyError:
        raise
    except Exception:
        logger.exception("Unexpected error in sync endpoint")
        raise InternalServerError("Internal server error")


# === Playlist mappings ===

def _mapping_info(mapping: PlaylistMapping) -> PlaylistMappingInfo:
    return PlaylistMappingInfo(
        id=mapping.id,
        playlist_id=mapping.playlist_id,
        playlist_name=mapping.playlist_name,
        sector_id=mapping.sector_id,
    )


@router.get("/playlist-mappings", response_model=PlaylistMappingsResponse, responses=ERROR_RESPONSES)
def list_playlist_mappings(
    _: AuthenticatedUser = Depends(require_admin),
    store: AcademyStore = Depends(get_store),
):
    """List configured playlist mappings, newest first."""
    try:
        mappings = store.get_playlist_mappings()
        return PlaylistMappingsResponse(mappings=[_mapping_info(m) for m in mappings])

    except AcademyError:
        raise
    except Exception:
        logger.exception("Unexpected error listing playlist mappings")
        raise InternalServerError("Internal server error")


@router.post(
    "/playlist-mappings",
    response_model=PlaylistMappingInfo,
    status_code=201,
    responses={**ERROR_RESPONSES, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def add_playlist_mapping(
    request: PlaylistMappingRequest,
    _: AuthenticatedUser = Depends(require_admin),
    store: AcademyStore = Depends(get_store),
):
    """
    Map a YouTube playlist to a sector.

    Accepts a full playlist URL (anything with `list=`) or a bare playlist ID.
    """
    playlist_id = extract_playlist_id(request.playlist)
    if not playlist_id:
        raise InvalidRequestError("Invalid playlist URL")

    name = (request.playlist_name or "").strip() or None
    mapping = PlaylistMapping(playlist_id=playlist_id, playlist_name=name, sector_id=request.sector_id)

    try:
        created = store.add_playlist_mapping(mapping)
    except DuplicateRecordError:
        raise ConflictError("This playlist is already mapped")
    except AcademyError:
        raise
    except Exception:
        logger.exception("Unexpected error adding playlist mapping")
        raise InternalServerError("Internal server error")

    logger.info(f"Added playlist mapping {playlist_id} -> sector {request.sector_id}")
    return _mapping_info(created)


@router.delete(
    "/playlist-mappings/{mapping_id}",
    response_model=DeleteResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
)
def delete_playlist_mapping(
    mapping_id: str,
    _: AuthenticatedUser = Depends(require_admin),
    store: AcademyStore = Depends(get_store),
):
    """Remove a playlist mapping. Videos already synced from it are kept."""
    try:
        deleted = store.delete_playlist_mapping(mapping_id)
    except AcademyError:
        raise
    except Exception:
        logger.exception("Unexpected error deleting playlist mapping")
        raise InternalServerError("Internal server error")

    if not deleted:
        raise NotFoundError("Playlist mapping not found")

    logger.info(f"Deleted playlist mapping {mapping_id}")
    return DeleteResponse(status="ok")


# === Health ===

@router.get("/health", response_model=HealthResponse)
def health_check():
    """
    Health check endpoint.

    Reports whether the Supabase and YouTube credentials are configured,
    without calling either service.
    """
    settings = get_settings()
    configured = settings.supabase_configured and settings.youtube_configured
    return HealthResponse(
        status="healthy" if configured else "degraded",
        version=__version__,
        supabase_configured=settings.supabase_configured,
        youtube_configured=settings.youtube_configured,
    )
