#!/usr/bin/env python3
"""
Test Data Script for the Tubely backend.

Seeds a draft video record for a user and prints a bearer token for that
user, so the upload endpoints can be exercised by hand:

    TOKEN=$(python scripts/create_test_data.py --quiet)
    curl -H "Authorization: Bearer $TOKEN" \
         -F "thumbnail=@boots.png;type=image/png" \
         http://localhost:8091/api/thumbnails/<video id>

Usage:
    python create_test_data.py [options]

Options:
    --user-id STR   Owner of the seeded video (default: a new UUID)
    --title STR     Title of the seeded video
    --count INT     Number of draft videos to create (default: 1)
    --clean         Delete existing videos for the user first
    --quiet         Print only the token
    --help          Show this help message and exit

Configuration (MONGODB_URI, MONGODB_DB_NAME, JWT_SECRET, ...) is read the
same way the server reads it: environment variables and an optional .env.
"""

import argparse
import sys
import uuid

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from app.config import get_settings
from app.core.auth import create_access_token
from app.core.database import VIDEOS_COLLECTION
from app.models.video import Video


CONNECTION_TIMEOUT_MS = 5000


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed Tubely draft videos and print a bearer token.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--user-id", default=None, help="Owner of the seeded videos")
    parser.add_argument("--title", default="Boots in the wild", help="Title of the seeded videos")
    parser.add_argument("--count", type=int, default=1, help="Number of draft videos to create")
    parser.add_argument("--clean", action="store_true", help="Delete the user's existing videos first")
    parser.add_argument("--quiet", action="store_true", help="Print only the token")
    return parser.parse_args()


def main() -> int:
    args = parse_arguments()
    settings = get_settings()
    user_id = args.user_id or str(uuid.uuid4())

    def log(message: str) -> None:
        if not args.quiet:
            print(message)

    log("=" * 60)
    log("Tubely Test Data Generator")
    log("=" * 60)

    client: MongoClient = MongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
        uuidRepresentation="standard",
    )
    try:
        client.admin.command("ping")
        videos = client[settings.mongodb_db_name][VIDEOS_COLLECTION]

        if args.clean:
            result = videos.delete_many({"user_id": user_id})
            log(f"Removed {result.deleted_count} existing videos for {user_id}")

        for index in range(args.count):
            title = args.title if args.count == 1 else f"{args.title} #{index + 1}"
            video = Video(user_id=user_id, title=title, description="Seeded by create_test_data.py")
            videos.insert_one(video.to_document())
            log(f"Created draft video {video.id}")

    except (ConnectionFailure, ServerSelectionTimeoutError) as e:
        print(f"Could not connect to MongoDB at {settings.mongodb_uri}: {e}", file=sys.stderr)
        return 1
    except PyMongoError as e:
        print(f"MongoDB error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    token = create_access_token(user_id, settings)
    log(f"User ID: {user_id}")
    log("Bearer token:")
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
