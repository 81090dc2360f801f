#!/usr/bin/env python3
"""
Test Data Generation Script for Tubely.

Creates draft video records for a local development user and prints a bearer
token for that user, so the upload endpoints can be exercised with curl.

Usage:
    python scripts/create_test_data.py [options]

Options:
    --count INT     Number of draft records to create (default: 5)
    --user-id UUID  Owner of the records (default: a new random UUID)
    --seed INT      Random seed for reproducible titles
    --clean         Delete the user's existing records first

Environment Variables:
    MONGODB_URI         MongoDB connection URI (default: mongodb://localhost:27017)
    SECRET_KEY          Key the printed token is signed with
"""

import argparse
import asyncio
import logging
import sys
import uuid

from faker import Faker
from pymongo.errors import PyMongoError

from tubely.config import get_settings
from tubely.core.auth import create_access_token
from tubely.core.database import DatabaseClient
from tubely.models.video import VideoCreate
from tubely.services.video_service import VideoService, VideoServiceError
from tubely.utils.logger import setup_logging


logger = logging.getLogger("tubely.scripts.create_test_data")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed draft video records for local development.")
    parser.add_argument("--count", type=int, default=5, help="Number of records to create")
    parser.add_argument("--user-id", type=uuid.UUID, default=None, help="Owner UUID")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--clean", action="store_true", help="Delete the user's records first")
    return parser.parse_args()


async def seed(user_id: str, count: int, clean: bool, fake: Faker) -> list[str]:
    client = DatabaseClient(get_settings())
    if not await client.connect():
        raise RuntimeError("Could not connect to MongoDB")

    try:
        collection = client.get_videos_collection()
        if clean:
            result = await collection.delete_many({"user_id": user_id})
            logger.info("Deleted %d existing records", result.deleted_count)

        service = VideoService(collection)
        created = []
        for _ in range(count):
            params = VideoCreate(
                title=fake.sentence(nb_words=4).rstrip("."),
                description=fake.paragraph(nb_sentences=2),
            )
            video = await service.create_video(user_id, params)
            created.append(video.id)
        return created
    finally:
        await client.close()


def main() -> int:
    args = parse_arguments()
    setup_logging(log_level="INFO", json_logs=False)

    fake = Faker()
    if args.seed is not None:
        Faker.seed(args.seed)

    user_id = str(args.user_id or uuid.uuid4())

    try:
        video_ids = asyncio.run(seed(user_id, args.count, args.clean, fake))
    except (RuntimeError, PyMongoError, VideoServiceError) as e:
        print(f"\nFailed to create test data: {e}")
        return 1

    token = create_access_token(user_id)
    print(f"\nUser:  {user_id}")
    print(f"Token: {token}\n")
    for video_id in video_ids:
        print(f"  {video_id}")
    if video_ids:
        print(
            "\nExample:\n"
            f"  curl -H 'Authorization: Bearer {token}' "
            f"-F 'video=@clip.mp4;type=video/mp4' "
            f"http://localhost:8091/api/v1/video_upload/{video_ids[0]}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
