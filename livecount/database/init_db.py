"""
Database initialization and seeding.

This script:
- Creates all database tables
- Optionally adds sample data for development/testing
- Can reset the database (drop and recreate)

Usage:
    # Create tables
    python -m livecount.database.init_db

    # Reset database (drops all tables and recreates)
    python -m livecount.database.init_db --reset

    # Add a sample creator, streams and a VOD
    python -m livecount.database.init_db --sample-data
"""

import argparse
from datetime import timedelta

from livecount.core.clock import utc_now
from livecount.core.constants import StreamStatus
from livecount.database.session import engine, get_db_context
from livecount.models import (
    create_all_tables,
    drop_all_tables,
    UserProfile,
    CreatorProfile,
    Stream,
    Vod,
    ViewerHeartbeat,
    VodViewerHeartbeat,
    UserWatchSession,
)
from livecount.services.baseline import stream_baseline

SAMPLE_WALLET = "0x5a3c9b1e0d7f4a2b8c6e1f3a9d0b7c4e2f8a6d1b"


def create_tables(reset: bool = False) -> None:
    """
    Create all database tables.

    Args:
        reset: If True, drop existing tables first
    """
    if reset:
        print("🗑️  Dropping existing tables...")
        drop_all_tables(engine)
        print("✅ Tables dropped")

    print("📊 Creating database tables...")
    create_all_tables(engine)
    print("✅ Tables created")


def seed_sample_data() -> None:
    """
    Seed sample data for development and testing.

    This creates:
    - A creator (user profile + creator profile with avatar)
    - One live stream and one ended stream
    - A VOD recorded from the ended stream

    Running it twice does nothing the second time.
    """
    print("\n🌱 Seeding sample data...")

    with get_db_context() as db:
        existing = db.query(UserProfile).filter_by(wallet_address=SAMPLE_WALLET).first()
        if existing:
            print(f"  ⏭️  Sample creator '{existing.username}' already exists (skipping)")
            return

        now = utc_now()

        print("  👤 Creating sample creator...")
        creator = UserProfile(
            username="ada",
            display_name="Ada Live",
            wallet_address=SAMPLE_WALLET,
        )
        db.add(creator)
        db.add(CreatorProfile(
            wallet_address=SAMPLE_WALLET,
            display_name="Ada Live",
            profile_picture_url="https://example.com/avatars/ada.png",
        ))
        db.flush()
        print(f"    ✅ {creator.username} ({creator.id})")

        print("  📺 Creating sample streams...")
        live = Stream(
            user_id=creator.id,
            title="Friday build night",
            description="Building a viewer counter live",
            category="Software",
            language="en",
            tags=["python", "sqlalchemy"],
            playback_id="pb-live-001",
            status=StreamStatus.LIVE.value,
            viewer_count=0,
            started_at=now,
        )
        ended = Stream(
            user_id=creator.id,
            title="Monday retro",
            category="Software",
            language="en",
            status=StreamStatus.ENDED.value,
            viewer_count=0,
            started_at=now - timedelta(days=3, hours=2),
            ended_at=now - timedelta(days=3),
        )
        db.add_all([live, ended])
        db.flush()
        print(f"    ✅ live:  {live.title} ({live.id}), baseline {stream_baseline(live.id)}")
        print(f"    ✅ ended: {ended.title} ({ended.id})")

        print("  🎞️  Creating sample VOD...")
        vod = Vod(
            user_id=creator.id,
            original_stream_id=ended.id,
            title="Monday retro (recording)",
            duration=7200.0,
            status="ready",
            total_views=stream_baseline(ended.id),
        )
        db.add(vod)
        db.flush()
        print(f"    ✅ {vod.title} ({vod.id}), {vod.total_views} views")

    print("✅ Sample data seeded")


def print_database_status() -> None:
    """Print row counts of the main tables."""
    print("\n" + "=" * 60)
    print("📊 Database Status")
    print("=" * 60)

    with get_db_context() as db:
        print(f"  Users:           {db.query(UserProfile).count()}")
        print(f"  Streams:         {db.query(Stream).count()}")
        print(f"  VODs:            {db.query(Vod).count()}")
        print(f"  Heartbeats:      {db.query(ViewerHeartbeat).count()}")
        print(f"  VOD heartbeats:  {db.query(VodViewerHeartbeat).count()}")
        print(f"  Watch sessions:  {db.query(UserWatchSession).count()}")

        live = db.query(Stream).filter_by(status=StreamStatus.LIVE.value).all()
        if live:
            print("\n  Live Streams:")
            for stream in live:
                print(f"    • {stream}")

    print("=" * 60)


def initialize_database(reset: bool = False, sample_data: bool = False) -> None:
    """
    Initialize the database.

    Args:
        reset: Drop existing tables before creating
        sample_data: Add sample data for testing
    """
    print("=" * 60)
    print("🗄️  Database Initialization")
    print("=" * 60)

    create_tables(reset=reset)

    if sample_data:
        seed_sample_data()

    print_database_status()

    print("\n✅ Database initialization complete!")


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Initialize and seed the livecount database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create tables
  python -m livecount.database.init_db

  # Reset database (drop all tables and recreate)
  python -m livecount.database.init_db --reset

  # Full reset with sample data
  python -m livecount.database.init_db --reset --sample-data
        """
    )

    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop existing tables before creating (WARNING: deletes all data!)"
    )

    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Add a sample creator, streams and a VOD"
    )

    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the reset confirmation prompt"
    )

    args = parser.parse_args()

    if args.reset and not args.yes:
        print("⚠️  WARNING: This will DELETE ALL DATA in the database!")
        response = input("Are you sure? Type 'yes' to continue: ")
        if response.lower() != 'yes':
            print("❌ Aborted")
            return

    initialize_database(reset=args.reset, sample_data=args.sample_data)


if __name__ == "__main__":
    main()
