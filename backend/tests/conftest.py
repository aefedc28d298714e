"""Shared fixtures: an in-memory store with two cardholders, an app and auth."""
import pytest
from flask_jwt_extended import create_access_token

from whoowes import create_app
from whoowes.auth.gate import Caller
from whoowes.cards.models import Card
from whoowes.config import TestConfig
from whoowes.extensions import build_ledger
from whoowes.store import InMemoryStore


@pytest.fixture
def store():
    store = InMemoryStore()
    store.save_card(Card(id="c1", cardholder="Alice", initials="AL"))
    store.save_card(Card(id="c2", cardholder="Bob", initials="BO"))
    return store


@pytest.fixture
def ledger(store):
    return build_ledger(store, max_attempts=5, max_wait=0.0)


@pytest.fixture
def caller():
    return Caller(identity="alice", authorized=True)


@pytest.fixture
def app(store):
    return create_app(TestConfig, store=store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    with app.app_context():
        token = create_access_token(identity="alice")
    return {"Authorization": f"Bearer {token}"}
