#!/usr/bin/env python3
"""
Seed the EventFlow database

Clears the users and events collections, then creates a test user and two
sample events owned by that user.

Usage:
    python scripts/seed.py
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from backend.middleware.jwt_auth import hash_password
from eventflow.core.config import Config
from eventflow.core.mongo_manager import EVENTS, USERS, MongoDBManager
from eventflow.models.mongo_models import EventDocument, UserDocument

TEST_USER_EMAIL = "test@example.com"
TEST_USER_PASSWORD = "password123"


def sample_events(creator_id: str):
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        EventDocument(
            title="Tech Conference 2025",
            description="A conference about the latest in technology",
            date=today + timedelta(days=30),
            time="09:00",
            location="San Francisco, CA",
            image_url="https://example.com/tech-conference.jpg",
            creator_id=creator_id,
        ),
        EventDocument(
            title="Community Meetup",
            description="Monthly meetup for local developers",
            date=today + timedelta(days=7),
            time="18:30",
            location="New York, NY",
            creator_id=creator_id,
        ),
    ]


def seed(db) -> None:
    print("🧹 Clearing existing data...")
    db[USERS].delete_many({})
    db[EVENTS].delete_many({})

    print("👤 Creating test user...")
    user = UserDocument(
        name="Test User",
        email=TEST_USER_EMAIL,
        password_hash=hash_password(TEST_USER_PASSWORD),
    )
    user_id = db[USERS].insert_one(user.to_mongo()).inserted_id
    print(f"   {TEST_USER_EMAIL} / {TEST_USER_PASSWORD} ({user_id})")

    print("📅 Creating sample events...")
    for event in sample_events(str(user_id)):
        db[EVENTS].insert_one(event.to_mongo())
        print(f"   {event.title} on {event.date:%Y-%m-%d} at {event.time}")


def main():
    print("=" * 60)
    print("EventFlow Seed Script")
    print("=" * 60)

    config = Config()
    mongo_manager = MongoDBManager(config.mongodb)

    try:
        print(f"🍃 Connecting to MongoDB ({mongo_manager.database_name})...")
        if not mongo_manager.test_connection():
            print("❌ MongoDB is not reachable, aborting")
            sys.exit(1)
        seed(mongo_manager.db)
        print("\n✅ Database seeded successfully")
    finally:
        mongo_manager.close()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠️  Seeding cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
