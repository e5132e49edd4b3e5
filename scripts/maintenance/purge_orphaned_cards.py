"""
Delete card states whose flashcard block was deleted or disabled.

Review logs of the purged cards are deleted as well.

Usage:
    # Show how many card states would be deleted
    python -m scripts.maintenance.purge_orphaned_cards --dry-run

    # Delete them
    python -m scripts.maintenance.purge_orphaned_cards
"""

import argparse
import logging

from srs_engine.content_repo import MongoContentRepository
from srs_engine.fsrs import CardRepository
from srs_engine.maintenance import BATCH_SIZE, purge_orphaned_card_states


def main():
    parser = argparse.ArgumentParser(description="Purge orphaned card states")
    parser.add_argument("--dry-run", action="store_true", help="Count only, delete nothing")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE, help="Card states examined per page")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    card_repo = CardRepository.from_url()
    card_repo.init_db()

    count = purge_orphaned_card_states(
        card_repo,
        MongoContentRepository(),
        batch_size=args.batch_size,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        print(f"{count} orphaned card state(s) would be deleted (dry run)")
    else:
        print(f"✓ Deleted {count} orphaned card state(s)")


if __name__ == "__main__":
    main()
