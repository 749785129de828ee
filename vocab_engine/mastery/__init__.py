"""
Mastery - saved items, per-kind counters and graduation.

Quick start:
    from vocab_engine.mastery import CollectionRepository, MasteryStore

    store = MasteryStore(CollectionRepository())
    pool = store.pool(PracticeKind.CHOOSE_WORD)
    result = store.increment("perro", PracticeKind.CHOOSE_WORD)
"""

from vocab_engine.mastery.database import (
    CollectionRepository,
    dispose_engines,
    get_engine,
    init_db,
    reset_db,
)
from vocab_engine.mastery.store import IncrementResult, MasteryStore

__all__ = [
    "CollectionRepository",
    "MasteryStore",
    "IncrementResult",
    "get_engine",
    "dispose_engines",
    "init_db",
    "reset_db",
]
