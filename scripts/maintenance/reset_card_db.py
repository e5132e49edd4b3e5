"""
Reset the card-state database.

DANGEROUS: This deletes all review history!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_card_db
"""

from srs_engine.fsrs import CardRepository


def main():
    print("=" * 60)
    print("WARNING: Reset Card-State Database")
    print("=" * 60)
    print()
    print("This will DELETE all review history:")
    print("  - All card states (stability, difficulty, due dates)")
    print("  - All review logs")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        CardRepository.from_url().reset_db()
        print("✓ Database reset complete!")
        print("\nCards are recreated as new when their documents are studied again.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
