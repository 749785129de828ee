"""
Reset the mastery database.

DANGEROUS: This deletes every saved word and learner setting!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_mastery_db
"""

from vocab_engine import config
from vocab_engine.mastery import reset_db


def main():
    print("=" * 60)
    print("WARNING: Reset Mastery Database")
    print("=" * 60)
    print()
    print(f"Database: {config.get_database_url()}")
    print()
    print("This will DELETE:")
    print("  - All saved practice items and their mastery counters")
    print("  - All learner settings (thresholds, lesson progress, streaks)")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        reset_db()
        print("✓ Database reset complete!")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
