import pytest

from vocab_engine import config


def test_database_url_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_MODE", raising=False)
    assert config.get_database_url() == "sqlite:///data/vocab_mastery.db"


def test_test_mode_swaps_database_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@host/vocab_mastery")
    monkeypatch.setenv("TEST_MODE", "true")
    assert config.is_test_mode()
    assert config.get_database_url() == "postgresql://u:p@host/test_vocab_mastery"


def test_mongo_uri_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MONGO_URI", raising=False)
    with pytest.raises(ValueError):
        config.get_mongo_uri()


def test_feedback_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FEEDBACK_DELAY_SECONDS", raising=False)
    assert config.get_feedback_delay_seconds() == 0.6
    assert config.get_feedback_delay_seconds(wrong=True) == 1.2

    monkeypatch.setenv("FEEDBACK_DELAY_SECONDS", "0.25")
    assert config.get_feedback_delay_seconds() == 0.25

    monkeypatch.setenv("FEEDBACK_DELAY_SECONDS", "soon")
    assert config.get_feedback_delay_seconds() == 0.6
