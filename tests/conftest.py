# tests/conftest.py
import os, sys
from datetime import datetime, timedelta, timezone
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("APP_ENV", "test")

from textshare import create_app
from textshare.config import TestConfig
from textshare.extensions import db


class FakeClock:
    """Horloge pilotable: remplace NoteStore.clock pour simuler le temps."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now += timedelta(**delta)


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        # tables propres pour chaque test (SQLite en mémoire)
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def clock(app):
    fake = FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
    app.extensions["note_store"].clock = fake
    return fake


@pytest.fixture()
def store(app, clock):
    # appels directs au store: besoin d'un contexte d'app pour db.session
    with app.app_context():
        yield app.extensions["note_store"]
