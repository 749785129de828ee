from vocab_engine.matching import (
    answers_match,
    blank_answers,
    labels_match,
    normalize_for_compare,
    tokens_match,
)


def test_answers_ignore_accents_and_case() -> None:
    assert answers_match("Canción", "cancion")
    assert answers_match("  PERRO ", "perro")
    assert answers_match("niño", "nino")
    assert not answers_match("pero", "perro")


def test_normalize_for_compare_strips_combining_marks() -> None:
    assert normalize_for_compare("Éxito") == "exito"
    assert normalize_for_compare("") == ""


def test_labels_collapse_whitespace() -> None:
    assert labels_match("the   Dog", " the dog ")
    assert not labels_match("the dog", "a dog")


def test_tokens_match() -> None:
    assert tokens_match(["El", "niño"], ["el", "nino"])
    assert not tokens_match(["El", "niño"], ["el"])
    assert not tokens_match(["azul"], ["rojo"])


def test_blank_answers_from_mapping_and_sequence() -> None:
    assert blank_answers([1, 3], {1: "a", 3: "b"}) == ["a", "b"]
    assert blank_answers([1, 3], {1: "a"}) == ["a", ""]
    assert blank_answers([1, 3], ["x", "y"]) == ["x", "y"]
    assert blank_answers([1], "word") is None
    assert blank_answers([1], 7) is None
