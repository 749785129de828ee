"""
Curriculum repository for guided-lesson content.

Lesson steps exist once per language. Items with the same id across two
languages form translation pairs.

Two providers share one interface:
- FileCurriculumProvider: `<root>/<lang>/index.json` plus one JSON file per step
- MongoCurriculumProvider: one document per (language, step) in MongoDB
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection

from vocab_engine import config
from vocab_engine.errors import CurriculumNotFoundError
from vocab_engine.schemas import StepContent, StepIndex, StepMeta

logger = logging.getLogger(__name__)

# Language names accepted in place of codes
LANGUAGE_ALIASES = {
    "english": "en",
    "spanish": "es",
    "español": "es",
    "espanol": "es",
}
DEFAULT_LANGUAGE = "en"

# Global connection pool (reused across providers)
_client: Optional[MongoClient] = None
_collection: Optional[Collection] = None


def resolve_language(language: str) -> str:
    """Map a language name or code to the code used for storage."""
    value = (language or "").strip().lower()
    if not value:
        return DEFAULT_LANGUAGE
    return LANGUAGE_ALIASES.get(value, value)


class CurriculumProvider(Protocol):
    def get_steps(self, language: str) -> StepIndex: ...

    def get_step(self, language: str, step_id: str) -> StepContent: ...


# ---- Files ----

class FileCurriculumProvider:
    """Reads lesson steps from a directory tree of JSON files."""

    def __init__(self, root_dir: Optional[Path] = None):
        self.root_dir = Path(root_dir) if root_dir is not None else config.get_curriculum_dir()

    def _read_json(self, path: Path) -> dict:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise CurriculumNotFoundError(f"Missing curriculum file: {path}") from exc
        except (OSError, ValueError) as exc:
            raise CurriculumNotFoundError(f"Unreadable curriculum file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CurriculumNotFoundError(f"Curriculum file is not an object: {path}")
        return data

    def get_steps(self, language: str) -> StepIndex:
        code = resolve_language(language)
        data = self._read_json(self.root_dir / code / "index.json")
        try:
            index = StepIndex.model_validate(data)
        except ValidationError as exc:
            raise CurriculumNotFoundError(f"Invalid step index for {language}: {exc}") from exc
        if not index.language:
            index.language = code
        return index

    def get_step(self, language: str, step_id: str) -> StepContent:
        """
        Load one lesson step.

        Raises:
            CurriculumNotFoundError: unknown language, step or empty step file
        """
        code = resolve_language(language)
        meta = _find_step_meta(self.get_steps(code), step_id)
        if not meta.file:
            raise CurriculumNotFoundError(f"Step {step_id} has no content file")

        data = self._read_json(self.root_dir / code / meta.file)
        try:
            content = StepContent.model_validate({
                "id": meta.id,
                "title": meta.title or data.get("title", ""),
                "language": data.get("language") or code,
                "items": data.get("items") or [],
            })
        except ValidationError as exc:
            raise CurriculumNotFoundError(f"Invalid step file for {step_id}: {exc}") from exc

        if not content.items:
            raise CurriculumNotFoundError(f"Step {step_id} has no items")
        return content


def _find_step_meta(index: StepIndex, step_id: str) -> StepMeta:
    for meta in index.steps:
        if meta.id == step_id:
            return meta
    raise CurriculumNotFoundError(f"Step not found: {step_id}")


# ---- MongoDB ----

def get_collection() -> Collection:
    """
    Get the MongoDB curriculum collection.

    The client is created once and reused.
    """
    global _client, _collection

    if _collection is not None:
        return _collection

    _client = MongoClient(
        config.get_mongo_uri(),
        maxPoolSize=10,
        minPoolSize=1,
        maxIdleTimeMS=60000
    )
    _collection = _client[config.get_curriculum_db_name()][config.get_curriculum_collection_name()]
    return _collection


class MongoCurriculumProvider:
    """
    Lesson steps stored as MongoDB documents.

    Document shape:
        {language, step_id, title, emoji, order, items: [...]}
    """

    def __init__(self, collection: Optional[Collection] = None):
        self._collection = collection

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            self._collection = get_collection()
        return self._collection

    def get_steps(self, language: str) -> StepIndex:
        code = resolve_language(language)
        docs = list(self.collection.find(
            {"language": code},
            {"_id": 0, "step_id": 1, "title": 1, "emoji": 1},
        ).sort("order", 1))
        if not docs:
            raise CurriculumNotFoundError(f"No lesson steps for language: {language}")

        steps = [
            StepMeta(id=doc["step_id"], title=doc.get("title", ""), emoji=doc.get("emoji"))
            for doc in docs
        ]
        return StepIndex(language=code, steps=steps)

    def get_step(self, language: str, step_id: str) -> StepContent:
        code = resolve_language(language)
        doc = self.collection.find_one({"language": code, "step_id": step_id}, {"_id": 0})
        if not doc or not doc.get("items"):
            raise CurriculumNotFoundError(f"Step not found: {step_id} ({language})")
        try:
            return StepContent(
                id=doc["step_id"],
                title=doc.get("title", ""),
                language=code,
                items=doc["items"],
            )
        except ValidationError as exc:
            raise CurriculumNotFoundError(f"Invalid step document {step_id}: {exc}") from exc

    def upsert_step(self, language: str, content: StepContent, order: int, emoji: Optional[str] = None) -> None:
        """Insert or replace one step document."""
        code = resolve_language(language)
        doc = {
            "language": code,
            "step_id": content.id,
            "title": content.title,
            "emoji": emoji,
            "order": order,
            "items": [item.model_dump(by_alias=True, mode="json") for item in content.items],
        }
        self.collection.replace_one({"language": code, "step_id": content.id}, doc, upsert=True)
        logger.debug("Upserted step %s (%s)", content.id, code)


# ---- Import ----

def list_languages(root_dir: Path) -> list[str]:
    """Language codes that have an index.json under a curriculum directory."""
    root = Path(root_dir)
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if (p / "index.json").is_file())


def copy_curriculum(
    source: FileCurriculumProvider,
    target: MongoCurriculumProvider,
    languages: Optional[list[str]] = None
) -> dict[str, int]:
    """
    Copy lesson steps from JSON files into MongoDB.

    Steps that fail to load are logged and skipped.

    Returns:
        Number of steps written per language code
    """
    codes = [resolve_language(lang) for lang in languages] if languages else list_languages(source.root_dir)
    written: dict[str, int] = {}
    for code in codes:
        written[code] = 0
        try:
            index = source.get_steps(code)
        except CurriculumNotFoundError as exc:
            logger.warning("Skipping language %s: %s", code, exc)
            continue

        for order, meta in enumerate(index.steps):
            try:
                content = source.get_step(code, meta.id)
            except CurriculumNotFoundError as exc:
                logger.warning("Skipping step %s (%s): %s", meta.id, code, exc)
                continue
            target.upsert_step(code, content, order=order, emoji=meta.emoji)
            written[code] += 1
    return written
