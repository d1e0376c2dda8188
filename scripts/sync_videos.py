#!/usr/bin/env python3
"""
Playlist sync CLI.

Runs the same sync and backfill as the HTTP endpoint, using the service-role
credentials from .env. There is no admin check here: whoever can read .env
already has full access.

Usage:
    python scripts/sync_videos.py --created-by <user-uuid>   # Sync new videos
    python scripts/sync_videos.py --backfill                 # Fill missing publish dates
    python scripts/sync_videos.py --status                   # Show counts
    python scripts/sync_videos.py --config                   # Show configuration
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from academy.config import get_settings
from academy.errors import MisconfiguredError
from academy.sync.academy_store import AcademyStore
from academy.sync.orchestrator import PlaylistSyncOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _mask(secret: str) -> str:
    return "***" + secret[-4:] if secret else "Not set"


def show_status():
    """Display current sync status."""
    print("\n=== Playlist Sync Status ===\n")

    try:
        orchestrator = PlaylistSyncOrchestrator(AcademyStore())
        status = orchestrator.get_status()
    except MisconfiguredError as e:
        print(f"Error: {e.message}")
        print("\nMake sure SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are set in .env")
        return

    if "error" in status:
        print(f"Error: {status['error']}")
        return

    print(f"Playlist mappings:      {status.get('mappings', 0)}")
    print(f"Videos:                 {status.get('videos', 0)}")
    print(f"Missing publish date:   {status.get('missing_publish_date', 0)}")


def show_config():
    """Display current sync configuration."""
    settings = get_settings()

    print("\n=== Sync Configuration ===\n")
    print(f"YouTube:")
    print(f"  API key: {_mask(settings.youtube_api_key)}")
    print(f"  API URL: {settings.youtube_api_base_url}")
    print(f"  Page size: {settings.youtube_page_size}")
    print(f"  Batch size: {settings.youtube_batch_size}")
    print(f"\nSupabase:")
    print(f"  URL: {settings.supabase_url or 'Not set'}")
    print(f"  Anon key: {_mask(settings.supabase_anon_key)}")
    print(f"  Service role key: {_mask(settings.supabase_service_role_key)}")


def run_sync(created_by: str = None, backfill: bool = False):
    """Run a sync or a publish date backfill."""
    print("\n" + "=" * 60)
    print("Playlist Sync")
    print("=" * 60)
    print(f"Mode: {'BACKFILL PUBLISH DATES' if backfill else 'SYNC'}")
    print()

    try:
        orchestrator = PlaylistSyncOrchestrator(AcademyStore())

        if backfill:
            stats = orchestrator.backfill_publish_dates()
        else:
            stats = orchestrator.sync(created_by=created_by)

        print("\n" + "=" * 60)
        print("SYNC COMPLETE")
        print("=" * 60)
        print(stats.message)
        print(stats)

        if stats.errors:
            print("\nErrors:")
            for error in stats.errors[:10]:
                print(f"  - {error}")
            if len(stats.errors) > 10:
                print(f"  ... and {len(stats.errors) - 10} more errors")

    except MisconfiguredError as e:
        print(f"\nConfiguration error: {e.message}")
        print("\nMake sure required environment variables are set:")
        print("  - SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        print("  - YOUTUBE_API_KEY")
        sys.exit(1)

    except Exception as e:
        print(f"\nSync failed: {e}")
        logger.exception("Sync error")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="Sync videos from mapped YouTube playlists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/sync_videos.py --created-by 6f1c...   # Sync new videos
  python scripts/sync_videos.py --backfill             # Fill missing publish dates
  python scripts/sync_videos.py --status               # Show current status
        """,
    )

    parser.add_argument(
        "--created-by",
        help="User ID recorded as creator of inserted videos (required for sync)",
    )
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Only fill in missing publish dates on stored videos",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show current sync status and exit",
    )
    parser.add_argument(
        "--config",
        action="store_true",
        help="Show current configuration and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.status:
        show_status()
        return

    if args.config:
        show_config()
        return

    if not args.backfill and not args.created_by:
        print("Error: --created-by is required unless --backfill is given")
        sys.exit(1)

    run_sync(created_by=args.created_by, backfill=args.backfill)


if __name__ == "__main__":
    main()
