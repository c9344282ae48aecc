import json
import uuid
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from scoutinghike.core.session import (
    SESSION_KEY,
    MemorySessionStore,
    SignedSessionStore,
    VolunteerSession,
)


@pytest.fixture
def session():
    return VolunteerSession(
        id=uuid.UUID("0b8f5d7e-3c1a-4f2b-9e6d-5a4c3b2a1f00"),
        name="Jan",
        event_id=uuid.UUID("9d2e4c6a-1b3f-4a5e-8c7d-6f5e4d3c2b1a"),
        event_name="Nachtwandeling",
        timestamp=datetime(2026, 5, 16, 9, 30, tzinfo=timezone.utc),
    )


def test_session_key_name():
    assert SESSION_KEY == "volunteerSession"


def test_blob_has_expected_fields(session):
    data = json.loads(session.to_blob())
    assert set(data) == {"id", "name", "event_id", "event_name", "timestamp"}
    assert data["name"] == "Jan"
    assert VolunteerSession.from_blob(session.to_blob()) == session


def test_missing_blob_means_logged_out():
    assert VolunteerSession.from_blob(None) is None
    assert VolunteerSession.from_blob("") is None


def test_session_is_immutable(session):
    with pytest.raises(ValidationError):
        session.name = "Piet"


class TestSignedStore:
    def test_round_trip(self, session):
        store = SignedSessionStore("s3cret", ttl_hours=24)
        assert store.load(store.save(session)) == session

    def test_wrong_secret_is_rejected(self, session):
        token = SignedSessionStore("s3cret", ttl_hours=24).save(session)
        assert SignedSessionStore("other", ttl_hours=24).load(token) is None

    def test_tampered_token_is_rejected(self, session):
        store = SignedSessionStore("s3cret", ttl_hours=24)
        token = store.save(session)
        head, body, sig = token.split(".")
        assert store.load(f"{head}.{body}x.{sig}") is None
        assert store.load("not-a-token") is None

    def test_expired_token_is_rejected(self, session):
        store = SignedSessionStore("s3cret", ttl_hours=-1)
        assert store.load(store.save(session)) is None


class TestMemoryStore:
    def test_clear_logs_out(self, session):
        store = MemorySessionStore()
        credential = store.save(session)
        assert store.load(credential) == session

        store.clear(credential)
        assert store.load(credential) is None
        # clearing twice is harmless
        store.clear(credential)

    def test_credentials_are_distinct(self, session):
        store = MemorySessionStore()
        assert store.save(session) != store.save(session)
