"""
Runtime configuration.

Values come from environment variables, optionally loaded from a `.env`
file. Learner thresholds are not configured here; they are persisted
settings (see MasteryPolicy).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///data/vocab_mastery.db"
PROD_DB_NAME = "vocab_mastery"
TEST_DB_NAME = "test_vocab_mastery"

DEFAULT_CURRICULUM_DIR = "data/curriculum"
DEFAULT_CURRICULUM_DB_NAME = "vocab_engine"
DEFAULT_CURRICULUM_COLLECTION = "curriculum_steps"

FEEDBACK_DELAY_SECONDS = 0.6        # Correct answer stays visible this long
WRONG_FEEDBACK_DELAY_SECONDS = 1.2  # Lesson runner wrong-answer pause


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the mastery database URL.

    In test mode the production database name is swapped for the test one.
    """
    url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if is_test_mode():
        return url.replace(PROD_DB_NAME, TEST_DB_NAME)
    return url


def get_mongo_uri() -> str:
    mongo_uri = os.getenv("MONGO_URI")
    if not mongo_uri:
        raise ValueError("MONGO_URI not found in environment variables")
    return mongo_uri


def get_curriculum_db_name() -> str:
    return os.getenv("CURRICULUM_DB_NAME", DEFAULT_CURRICULUM_DB_NAME)


def get_curriculum_collection_name() -> str:
    return os.getenv("CURRICULUM_COLLECTION", DEFAULT_CURRICULUM_COLLECTION)


def get_curriculum_dir() -> Path:
    return Path(os.getenv("CURRICULUM_DIR", DEFAULT_CURRICULUM_DIR))


def get_feedback_delay_seconds(wrong: bool = False) -> float:
    """Delay before advancing after feedback; invalid overrides use the default."""
    name = "WRONG_FEEDBACK_DELAY_SECONDS" if wrong else "FEEDBACK_DELAY_SECONDS"
    default = WRONG_FEEDBACK_DELAY_SECONDS if wrong else FEEDBACK_DELAY_SECONDS
    try:
        return max(0.0, float(os.getenv(name, default)))
    except ValueError:
        return default
