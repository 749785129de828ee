import random
import threading

import pytest

from conftest import WORD_PAIRS, make_item
from vocab_engine.constants import SURPRISE_KINDS, PracticeKind
from vocab_engine.errors import NotEnoughItemsError, PracticeEngineError
from vocab_engine.mastery import CollectionRepository, MasteryStore
from vocab_engine.matching import normalize_label
from vocab_engine.practice_round import PracticeRoundEngine, RoundState


class FakeScheduler:
    """Collects scheduled callbacks instead of starting timers."""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, delay, callback):
        self.calls.append((delay, callback))

    def fire(self) -> None:
        _, callback = self.calls.pop(0)
        callback()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


def _seed(repository: CollectionRepository, count: int, **counters: int) -> None:
    repository.write_collection([
        make_item(term, translation, f"El {term} es bonito", **counters)
        for term, translation in WORD_PAIRS[:count]
    ])


def _engine(store, kind, scheduler, **kwargs) -> PracticeRoundEngine:
    return PracticeRoundEngine(store, kind, rng=random.Random(11), scheduler=scheduler,
                               feedback_delay=0.6, **kwargs)


def _wrong_label(current) -> str:
    return next(o for o in current.options if o != current.answer)


def test_choose_word_round_has_eight_options(store, repository, scheduler) -> None:
    _seed(repository, 10)
    current = _engine(store, PracticeKind.CHOOSE_WORD, scheduler).start()

    assert current.prompt == current.item.translation
    assert current.answer == current.item.term
    assert len(current.options) == 8
    assert len(set(current.options)) == 8
    assert sum(o.is_correct for o in current.option_items()) == 1


def test_not_enough_unique_options(store, repository, scheduler) -> None:
    _seed(repository, 5)
    engine = _engine(store, PracticeKind.CHOOSE_TRANSLATION, scheduler)

    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS
    assert engine.shortage.required == 8
    assert engine.shortage.available == 5


def test_choice_rounds_need_two_items(store, repository, scheduler) -> None:
    _seed(repository, 1)
    engine = _engine(store, PracticeKind.HEARING, scheduler)
    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS


def test_empty_pool(store, scheduler) -> None:
    engine = _engine(store, PracticeKind.LETTER_FILL, scheduler)
    assert engine.start() is None
    assert isinstance(engine.shortage, NotEnoughItemsError)


def test_hearing_option_count_grows(store, repository, scheduler) -> None:
    _seed(repository, 8, hearing=1)
    current = _engine(store, PracticeKind.HEARING, scheduler).start()
    assert len(current.options) == 6
    assert current.options.count(current.item.translation) == 1


def test_pick_index_avoids_previous_item(store, repository, scheduler) -> None:
    _seed(repository, 3)
    engine = _engine(store, PracticeKind.LETTER_FILL, scheduler)
    pool = store.pool(PracticeKind.LETTER_FILL)
    for _ in range(30):
        engine.last_term = "gato"
        assert pool[engine.pick_index(pool)].term != "gato"


def test_single_item_pool_repeats(store, repository, scheduler) -> None:
    _seed(repository, 1)
    engine = _engine(store, PracticeKind.WRITE_WORD, scheduler)
    first = engine.start()
    second = engine.next()
    assert first.item.term == second.item.term == "perro"


def test_correct_answer_increments_and_schedules_next(store, repository, scheduler) -> None:
    _seed(repository, 10)
    finished = []
    engine = _engine(store, PracticeKind.CHOOSE_WORD, scheduler,
                     on_finished=lambda r, ok: finished.append((r.item.term, ok)))
    current = engine.start()

    outcome = engine.submit(current.answer)

    assert outcome.is_correct
    assert outcome.state == RoundState.CORRECT
    assert store.get(current.item.term).counter(PracticeKind.CHOOSE_WORD) == 1
    assert finished == [(current.item.term, True)]
    assert scheduler.calls[0][0] == 0.6

    scheduler.fire()
    assert engine.state == RoundState.AWAITING_ANSWER
    assert engine.current.item.term != current.item.term


def test_option_index_answers(store, repository, scheduler) -> None:
    _seed(repository, 10)
    engine = _engine(store, PracticeKind.CHOOSE_TRANSLATION, scheduler)
    current = engine.start()
    assert engine.submit(current.options.index(current.answer)).is_correct


def test_choice_kinds_allow_one_retry(store, repository, scheduler) -> None:
    _seed(repository, 10)
    engine = _engine(store, PracticeKind.CHOOSE_WORD, scheduler)
    current = engine.start()

    first = engine.submit(_wrong_label(current))
    assert first.can_retry
    assert current.state == RoundState.AWAITING_ANSWER

    second = engine.submit(_wrong_label(current))
    assert not second.can_retry
    assert second.reveal == current.answer
    assert current.revealed
    assert engine.state == RoundState.WRONG
    assert store.get(current.item.term).total_correct == 0
    assert scheduler.calls == []

    with pytest.raises(PracticeEngineError):
        engine.submit(current.answer)
    assert engine.next() is not None


def test_letter_fill_reveals_immediately(store, repository, scheduler) -> None:
    _seed(repository, 3)
    engine = _engine(store, PracticeKind.LETTER_FILL, scheduler)
    current = engine.start()

    outcome = engine.submit("zzzz")

    assert not outcome.can_retry
    assert outcome.reveal == current.item.term
    assert store.get(current.item.term).total_correct == 0


def test_letter_fill_accepts_blank_letters(store, repository, scheduler) -> None:
    _seed(repository, 3)
    engine = _engine(store, PracticeKind.LETTER_FILL, scheduler)
    current = engine.start()

    letters = {i: current.units[i].upper() for i in current.blank_indices}
    assert engine.submit(letters).is_correct


def test_write_translation_targets_translation(store, repository, scheduler) -> None:
    _seed(repository, 3)
    current = _engine(store, PracticeKind.WRITE_TRANSLATION, scheduler).start()
    assert current.answer == current.item.translation
    assert current.prompt == current.item.term
    assert "".join(current.units) == current.item.translation


def test_word_fill_round(store, repository, scheduler) -> None:
    _seed(repository, 4)
    engine = _engine(store, PracticeKind.WORD_FILL, scheduler)
    current = engine.start()

    assert current.units == current.item.example_sentence.split()
    assert len(current.blank_indices) == 1
    assert set(current.expected_blanks) <= set(current.word_bank)
    assert engine.submit(current.expected_blanks).is_correct


def test_word_fill_needs_sentences(store, repository, scheduler) -> None:
    repository.write_collection([make_item("perro", "dog")])
    engine = _engine(store, PracticeKind.WORD_FILL, scheduler)
    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS


def test_mastered_signal_once(repository, scheduler) -> None:
    repository.write_collection([
        make_item(term, translation, hearing=5 if term == "perro" else 0)
        for term, translation in WORD_PAIRS
    ])
    store = MasteryStore(repository)
    engine = _engine(store, PracticeKind.CHOOSE_WORD, scheduler)

    current = engine.start()
    while current.item.term != "perro":
        current = engine.next()

    outcome = engine.submit(current.answer)
    assert outcome.mastered
    assert "perro" not in store.unique_terms()


def test_close_ignores_pending_timer(store, repository, scheduler) -> None:
    _seed(repository, 10)
    engine = _engine(store, PracticeKind.CHOOSE_WORD, scheduler)
    current = engine.start()
    engine.submit(current.answer)

    engine.close()
    scheduler.fire()

    assert engine.state == RoundState.IDLE
    assert engine.next() is None


def test_kinds_without_rounds_are_rejected(store) -> None:
    with pytest.raises(ValueError):
        PracticeRoundEngine(store, PracticeKind.FLIP_CARD)


def test_every_surprise_kind_has_rounds(store, repository, scheduler) -> None:
    _seed(repository, 10)
    for kind in SURPRISE_KINDS:
        assert _engine(store, kind, scheduler).start() is not None


# ---- Option Integrity ----

def test_case_variant_translations_appear_once(store, repository, scheduler) -> None:
    repository.write_collection(
        [make_item(term, translation) for term, translation in WORD_PAIRS]
        + [make_item("can", "Dog")]
    )
    engine = _engine(store, PracticeKind.CHOOSE_TRANSLATION, scheduler)
    current = engine.start()
    for _ in range(20):
        keys = [normalize_label(o) for o in current.options]
        assert len(current.options) == 8
        assert len(set(keys)) == 8
        assert len(current.option_items()) == 8
        assert sum(o.is_correct for o in current.option_items()) == 1
        current = engine.next()


# ---- Letter Rounds ----

def test_letter_rounds_skip_terms_without_letters(store, repository, scheduler) -> None:
    repository.write_collection([make_item("42", "forty-two")])
    engine = _engine(store, PracticeKind.WRITE_WORD, scheduler)
    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS

    repository.write_collection([make_item("42", "forty-two"), make_item("perro", "dog")])
    for _ in range(5):
        current = engine.next()
        assert current.item.term == "perro"
        assert current.blank_indices


def test_write_translation_uses_translation_letters(store, repository, scheduler) -> None:
    repository.write_collection([make_item("cuarenta", "40")])
    engine = _engine(store, PracticeKind.WRITE_TRANSLATION, scheduler)
    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS


# ---- Sentence Assembly ----

def test_assembly_round(store, repository, scheduler) -> None:
    _seed(repository, 3)
    engine = _engine(store, PracticeKind.SENTENCE_ASSEMBLY, scheduler)
    current = engine.start()

    assert current.units == current.item.example_sentence.split()
    assert sorted(current.tiles) == sorted(current.units)
    assert current.prompt == current.item.translation

    order = []
    for token in current.units:
        order.append(next(i for i, t in enumerate(current.tiles) if t == token and i not in order))
    outcome = engine.submit(order)

    assert outcome.is_correct
    assert store.get(current.item.term).counter(PracticeKind.SENTENCE_ASSEMBLY) == 1
    assert len(scheduler.calls) == 1


def test_assembly_checks_token_order(store, repository, scheduler) -> None:
    _seed(repository, 3)
    engine = _engine(store, PracticeKind.SENTENCE_ASSEMBLY, scheduler)
    current = engine.start()

    outcome = engine.submit(list(reversed(current.units)))

    assert not outcome.is_correct
    assert not outcome.can_retry
    assert outcome.reveal == current.item.example_sentence
    assert store.get(current.item.term).total_correct == 0


def test_assembly_needs_two_tokens(store, repository, scheduler) -> None:
    repository.write_collection([make_item("hola", "hello", "Hola"), make_item("perro", "dog")])
    engine = _engine(store, PracticeKind.SENTENCE_ASSEMBLY, scheduler)
    assert engine.start() is None
    assert engine.state == RoundState.NOT_ENOUGH_ITEMS


def test_assembly_does_not_repeat_sentences(store, repository, scheduler) -> None:
    _seed(repository, 2)
    engine = _engine(store, PracticeKind.SENTENCE_ASSEMBLY, scheduler)
    previous = engine.start().item.term
    for _ in range(10):
        current = engine.next()
        assert current.item.term != previous
        previous = current.item.term


# ---- Pair Matching ----

def test_pair_board_holds_distinct_pairs(store, repository, scheduler) -> None:
    _seed(repository, 10)
    current = _engine(store, PracticeKind.MEMORY_MATCH, scheduler).start()

    assert len(current.pairs) == 9
    assert current.item.term in current.pairs
    assert sorted(current.units) == sorted(current.pairs)
    assert sorted(current.options) == sorted(current.pairs.values())
    assert dict(WORD_PAIRS).items() >= current.pairs.items()


def test_pair_count_is_clamped(store, repository, scheduler) -> None:
    _seed(repository, 10)
    assert len(_engine(store, PracticeKind.MEMORY_MATCH, scheduler, pair_count=1).start().pairs) == 3
    assert len(_engine(store, PracticeKind.MEMORY_MATCH, scheduler, pair_count=5).start().pairs) == 5
    assert len(_engine(store, PracticeKind.MEMORY_MATCH, scheduler, pair_count=20).start().pairs) == 9


def test_small_collection_gives_small_board(store, repository, scheduler) -> None:
    _seed(repository, 2)
    current = _engine(store, PracticeKind.MEMORY_MATCH, scheduler).start()
    assert len(current.pairs) == 2


def test_each_matched_pair_counts_for_its_word(store, repository, scheduler) -> None:
    _seed(repository, 4)
    finished = []
    engine = _engine(store, PracticeKind.MEMORY_MATCH, scheduler,
                     on_finished=lambda r, ok: finished.append(ok))
    current = engine.start()
    terms = list(current.pairs)

    miss = engine.submit((terms[0], current.pairs[terms[1]]))
    assert not miss.is_correct
    assert miss.can_retry
    assert store.get(terms[0]).total_correct == 0

    for term in terms[:-1]:
        outcome = engine.submit((term.upper(), current.pairs[term]))
        assert outcome.is_correct
        assert outcome.matched_term == term
        assert outcome.state == RoundState.AWAITING_ANSWER
        assert store.get(term).counter(PracticeKind.MEMORY_MATCH) == 1
    assert scheduler.calls == []
    assert finished == []

    repeat = engine.submit((terms[0], current.pairs[terms[0]]))
    assert not repeat.is_correct
    assert store.get(terms[0]).counter(PracticeKind.MEMORY_MATCH) == 1

    last = engine.submit((terms[-1], current.pairs[terms[-1]]))
    assert last.state == RoundState.CORRECT
    assert current.board_cleared
    assert finished == [True]
    assert len(scheduler.calls) == 1

    scheduler.fire()
    assert engine.state == RoundState.AWAITING_ANSWER


# ---- Timer Threads ----

def test_stale_timer_from_another_thread_is_ignored(store, repository, scheduler) -> None:
    _seed(repository, 10)
    engine = _engine(store, PracticeKind.CHOOSE_WORD, scheduler)
    engine.submit(engine.start().answer)
    _, advance = scheduler.calls.pop()

    manual = engine.next()
    worker = threading.Thread(target=advance)
    worker.start()
    worker.join()

    assert engine.current is manual


def test_concurrent_next_calls_leave_a_consistent_round(store, repository, scheduler) -> None:
    _seed(repository, 10)
    engine = _engine(store, PracticeKind.LETTER_FILL, scheduler)
    engine.start()

    def spin() -> None:
        for _ in range(25):
            engine.next()

    workers = [threading.Thread(target=spin) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert engine.state == RoundState.AWAITING_ANSWER
    assert engine.current.item.term == engine.last_term
