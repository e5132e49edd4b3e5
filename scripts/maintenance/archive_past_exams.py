"""
Archive exams whose date has passed.

Archived exams no longer prioritize their documents in learn sessions.
Runs in pages of --batch-size until no past exam is left.

Usage:
    python -m scripts.maintenance.archive_past_exams

    # Smaller pages
    python -m scripts.maintenance.archive_past_exams --batch-size 25
"""

import argparse
import logging

from srs_engine.content_repo import MongoContentRepository
from srs_engine.maintenance import BATCH_SIZE, archive_past_exams


def main():
    parser = argparse.ArgumentParser(description="Archive past exams")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE, help="Exams archived per page")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    archived = archive_past_exams(MongoContentRepository(), batch_size=args.batch_size)
    print(f"✓ Archived {archived} past exam(s)")


if __name__ == "__main__":
    main()
