from __future__ import annotations

import json
import random
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

import pytest

from vocab_engine.constants import PracticeKind
from vocab_engine.mastery import CollectionRepository, MasteryStore, dispose_engines, get_engine
from vocab_engine.schemas import Item, MasteryPolicy


@pytest.fixture
def repository(tmp_path: Path) -> Iterator[CollectionRepository]:
    """Repository backed by a fresh SQLite file per test."""
    engine = get_engine(f"sqlite:///{tmp_path / 'mastery.db'}")
    try:
        yield CollectionRepository(engine)
    finally:
        dispose_engines()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def store(repository: CollectionRepository) -> MasteryStore:
    return MasteryStore(repository, MasteryPolicy())


def make_item(term: str, translation: str, sentence: Optional[str] = None, **counters: int) -> Item:
    """Item with counters given by kind value, e.g. make_item("perro", "dog", hearing=2)."""
    return Item(
        term=term,
        translation=translation,
        example_sentence=sentence,
        mastery_counters={PracticeKind(name).value: count for name, count in counters.items()},
    )


WORD_PAIRS = [
    ("perro", "dog"),
    ("gato", "cat"),
    ("casa", "house"),
    ("rojo", "red"),
    ("azul", "blue"),
    ("mesa", "table"),
    ("libro", "book"),
    ("agua", "water"),
    ("sol", "sun"),
    ("luna", "moon"),
]


# ---- Curriculum Files ----

LEARNING_ITEMS = [
    {"id": "w1", "type": "word", "text": "perro", "practiceType": "chooseTranslation, chooseWord, hearing"},
    {"id": "w2", "type": "word", "text": "gato", "practiceType": "wordMissingLetters"},
    {"id": "w3", "type": "word", "text": "casa", "practiceType": "writeWord"},
    {"id": "w4", "type": "word", "text": "rojo", "practiceType": "translationMissingLetters"},
    {"id": "w5", "type": "word", "text": "azul"},
    {"id": "w6", "type": "word", "text": "mesa", "practiceType": "memoryGame"},
    {"id": "w7", "type": "word", "text": "libro", "practiceType": "chooseTranslation"},
    {"id": "w8", "type": "word", "text": "agua", "practiceType": "chooseTranslation"},
    {"id": "w9", "type": "word", "text": "sol", "practiceType": "chooseTranslation"},
    {"id": "w10", "type": "word", "text": "luna", "practiceType": "chooseTranslation"},
    {"id": "s1", "type": "sentence", "text": "El perro es rojo", "practiceType": "missingWords, formulateSentense"},
    {"id": "s2", "type": "sentence", "text": "La casa es azul..."},
]

NATIVE_ITEMS = [
    {"id": "w1", "type": "word", "text": "dog"},
    {"id": "w2", "type": "word", "text": "cat"},
    {"id": "w3", "type": "word", "text": "house"},
    {"id": "w4", "type": "word", "text": "red"},
    {"id": "w5", "type": "word", "text": "blue"},
    {"id": "w6", "type": "word", "text": "table"},
    {"id": "w7", "type": "word", "text": "book"},
    {"id": "w8", "type": "word", "text": "water"},
    {"id": "w9", "type": "word", "text": "sun"},
    {"id": "w10", "type": "word", "text": "moon"},
    {"id": "s1", "type": "sentence", "text": "The dog is red"},
    {"id": "s2", "type": "sentence", "text": "The house is blue"},
]


def write_language(root: Path, code: str, items: list[dict], step_id: str = "step-1") -> None:
    lang_dir = root / code
    lang_dir.mkdir(parents=True, exist_ok=True)
    index = {
        "language": code,
        "steps": [
            {"id": step_id, "title": "Animals and colours", "emoji": "🐶", "file": f"{step_id}.json"},
            {"id": "step-2", "title": "Missing file", "file": "missing.json"},
        ],
    }
    (lang_dir / "index.json").write_text(json.dumps(index), encoding="utf-8")
    step = {"id": step_id, "title": "Animals and colours", "language": code, "items": items}
    (lang_dir / f"{step_id}.json").write_text(json.dumps(step, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def curriculum_dir(tmp_path: Path) -> Path:
    root = tmp_path / "curriculum"
    write_language(root, "es", LEARNING_ITEMS)
    write_language(root, "en", NATIVE_ITEMS)
    return root


# ---- MongoDB ----

class FakeCursor:
    def __init__(self, docs: list[dict], projection: Optional[dict]):
        self._docs = docs
        self._projection = projection

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        ordered = sorted(self._docs, key=lambda d: d.get(key, 0), reverse=direction < 0)
        return FakeCursor(ordered, self._projection)

    def __iter__(self):
        return (_project(doc, self._projection) for doc in self._docs)


def _project(doc: dict, projection: Optional[dict]) -> dict:
    if not projection:
        return dict(doc)
    included = [key for key, value in projection.items() if value and key != "_id"]
    if included:
        return {key: doc[key] for key in included if key in doc}
    return {key: value for key, value in doc.items() if key != "_id"}


class FakeCollection:
    """Just enough of a pymongo collection for the curriculum provider."""

    def __init__(self) -> None:
        self.docs: list[dict] = []

    @staticmethod
    def _matches(doc: dict, query: dict) -> bool:
        return all(doc.get(key) == value for key, value in query.items())

    def find(self, query: Optional[dict] = None, projection: Optional[dict] = None) -> FakeCursor:
        query = query or {}
        return FakeCursor([d for d in self.docs if self._matches(d, query)], projection)

    def find_one(self, query: dict, projection: Optional[dict] = None) -> Optional[dict]:
        for doc in self.docs:
            if self._matches(doc, query):
                return _project(doc, projection)
        return None

    def replace_one(self, query: dict, doc: dict, upsert: bool = False) -> Any:
        for i, existing in enumerate(self.docs):
            if self._matches(existing, query):
                self.docs[i] = dict(doc)
                return None
        if upsert:
            self.docs.append(dict(doc))
        return None


@pytest.fixture
def fake_collection() -> FakeCollection:
    return FakeCollection()
