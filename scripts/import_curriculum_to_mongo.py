"""
Import guided-lesson steps from JSON files into MongoDB.

Reads `<curriculum-dir>/<lang>/index.json` and the step files it lists,
then upserts one document per (language, step).

Usage:
    python -m scripts.import_curriculum_to_mongo [--dir PATH] [--language es] [--dry-run]
"""

from __future__ import annotations

import argparse
from pathlib import Path

from vocab_engine import config
from vocab_engine.curriculum_repo import (
    FileCurriculumProvider,
    MongoCurriculumProvider,
    copy_curriculum,
    list_languages,
)
from vocab_engine.errors import CurriculumNotFoundError


def import_curriculum(root_dir: Path, languages: list[str] | None = None, dry_run: bool = False) -> None:
    """
    Copy curriculum steps into MongoDB.

    Args:
        root_dir: Curriculum directory with one folder per language
        languages: Language codes or names to import (None = all found)
        dry_run: If True, only list what would be imported
    """
    source = FileCurriculumProvider(root_dir)
    codes = languages or list_languages(root_dir)
    if not codes:
        print(f"No languages found under {root_dir}")
        return

    print(f"Curriculum directory: {root_dir}")
    print(f"Languages: {', '.join(codes)}\n")

    if dry_run:
        for code in codes:
            try:
                index = source.get_steps(code)
            except CurriculumNotFoundError as e:
                print(f"  ✗ {code}: {e}")
                continue
            print(f"  {code}: {len(index.steps)} steps")
        print("\n⚠ DRY RUN MODE - No changes were made to MongoDB")
        return

    target = MongoCurriculumProvider()
    print(f"Writing to {config.get_curriculum_db_name()}.{config.get_curriculum_collection_name()}")
    written = copy_curriculum(source, target, codes)

    print(f"\n{'='*60}")
    print("Import complete!")
    print(f"{'='*60}")
    for code, count in written.items():
        print(f"  {code}: {count} steps")


def main():
    parser = argparse.ArgumentParser(
        description="Import guided-lesson steps from JSON files into MongoDB"
    )
    parser.add_argument(
        "--dir",
        type=Path,
        default=None,
        help="Curriculum directory (default: CURRICULUM_DIR or data/curriculum)"
    )
    parser.add_argument(
        "--language",
        action="append",
        help="Language code or name to import; repeat for several (default: all)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List steps without writing to MongoDB"
    )

    args = parser.parse_args()

    import_curriculum(
        root_dir=args.dir or config.get_curriculum_dir(),
        languages=args.language,
        dry_run=args.dry_run
    )


if __name__ == "__main__":
    main()
