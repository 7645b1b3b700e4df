"""Tests for the App wiring."""

from fluency.app import App
from fluency.decks import DeckRegistry
from fluency.memory import MemoryEngine


def test_app_defaults(app, tmp_data_dir):
    assert app.data_dir == tmp_data_dir
    assert app.config["new_item_window"] == 5
    assert app.engine is None


def test_register_decks_once(app):
    app.register_decks()
    ids = [d.id for d in app.registry.all()]
    assert ids == ["multiplication", "katakana", "subtraction", "addition"]
    app.register_decks()
    assert len(app.registry.all()) == 4


def test_load_engine_uses_config(tmp_data_dir):
    (tmp_data_dir / "settings.toml").write_text("desired_retention = 0.8\n")
    a = App(data_dir=tmp_data_dir, deck_registry=DeckRegistry())
    engine = a.load_engine()
    assert isinstance(engine, MemoryEngine)
    assert engine.desired_retention == 0.8
    assert a.engine is engine


def test_review_session_loads_defaults(app):
    app.register_decks()
    review = app.review_session()
    assert len(review.items) == 784
    assert review.settings.enabled_decks == ["multiplication"]
    assert review.new_window == 5
    assert review.store is app.store


def test_new_item_window_from_config(tmp_data_dir):
    (tmp_data_dir / "settings.toml").write_text("new_item_window = 2\n")
    a = App(data_dir=tmp_data_dir, deck_registry=DeckRegistry())
    a.init_db(":memory:")
    a.register_decks()
    assert a.review_session().new_window == 2
    a.close()


def test_unopenable_db_keeps_running(tmp_data_dir, tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    a = App(data_dir=tmp_data_dir, deck_registry=DeckRegistry())
    a.init_db(blocker / "sub" / "fluency.db")
    assert "progress will not be saved" in capsys.readouterr().err
    a.register_decks()
    review = a.review_session()
    assert len(review.items) == 784
    a.close()


def test_default_db_path(tmp_data_dir):
    a = App(data_dir=tmp_data_dir, deck_registry=DeckRegistry())
    a.init_db()
    assert (tmp_data_dir / "fluency.db").exists()
    a.close()
