"""SessionStore unit tests: load/migration, CRUD, titles and persistence."""

import json

import pytest

from arbejdsret.models.domain import ChatMessage, Source, Topic
from arbejdsret.services.errors import SessionNotFound
from arbejdsret.services.sessions import (
    DEFAULT_CHAT_TITLE,
    LEGACY_HISTORY_KEY,
    SESSIONS_KEY,
    WELCOME_MESSAGE,
    SessionStore,
    derive_title,
    deserialize_sessions,
    serialize_sessions,
)
from arbejdsret.services.storage import MemoryStorage

from .conftest import StepClock


def test_first_load_with_empty_storage_creates_welcome_session(store, storage):
    store.load()

    assert len(store.sessions) == 1
    session = store.sessions[0]
    assert store.active_session_id == session.id
    assert len(session.messages) == 1
    assert session.messages[0].role == "model"
    assert session.messages[0].text == WELCOME_MESSAGE
    assert session.title == DEFAULT_CHAT_TITLE
    assert session.topic is Topic.GENERELT
    assert deserialize_sessions(storage.get(SESSIONS_KEY)) == store.sessions


def test_load_sorts_by_updated_at_and_activates_most_recent(storage, clock):
    seed = SessionStore(MemoryStorage(), clock=clock)
    older = seed.create_session()
    newer = seed.create_session()
    # store oldest first to prove the load re-sorts
    storage.set(SESSIONS_KEY, serialize_sessions([older, newer]))

    store = SessionStore(storage, clock=clock)
    store.load()

    assert [s.id for s in store.sessions] == [newer.id, older.id]
    assert store.active_session_id == newer.id


def test_load_runs_only_once(store, storage):
    store.load()
    first_ids = [s.id for s in store.sessions]

    storage.set(SESSIONS_KEY, "[]")
    store.load()

    assert [s.id for s in store.sessions] == first_ids


@pytest.mark.parametrize("raw", ["not json", "{\"id\": 1}", "[{\"title\": \"missing fields\"}]", "[]"])
def test_unreadable_or_empty_sessions_fall_back_to_welcome(storage, clock, raw):
    storage.set(SESSIONS_KEY, raw)
    store = SessionStore(storage, clock=clock)

    store.load()

    assert len(store.sessions) == 1
    assert store.sessions[0].messages[0].text == WELCOME_MESSAGE
    assert len(deserialize_sessions(storage.get(SESSIONS_KEY))) == 1


def test_legacy_history_is_migrated_and_removed(storage, clock):
    legacy = [
        {"id": "1", "role": "model", "text": "Hej.", "timestamp": 1714550400000},
        {"id": "2", "role": "user", "text": "Hvor langt er varslet for en funktionær med 4 års anciennitet?", "timestamp": 1714550460000},
        {"id": "3", "role": "model", "text": "Tre måneder.", "timestamp": 1714550470000},
    ]
    storage.set(LEGACY_HISTORY_KEY, json.dumps(legacy))
    store = SessionStore(storage, clock=clock)

    store.load()

    assert len(store.sessions) == 1
    session = store.sessions[0]
    assert [(m.id, m.role, m.text) for m in session.messages] == [
        (item["id"], item["role"], item["text"]) for item in legacy
    ]
    assert store.active_session_id == session.id
    assert session.title == "Hvor langt er varslet for en f..."
    assert LEGACY_HISTORY_KEY not in storage
    persisted = deserialize_sessions(storage.get(SESSIONS_KEY))
    assert persisted == [session]


def test_new_format_wins_over_legacy(storage, clock):
    seed = SessionStore(MemoryStorage(), clock=clock)
    existing = seed.create_session()
    storage.set(SESSIONS_KEY, serialize_sessions([existing]))
    storage.set(LEGACY_HISTORY_KEY, json.dumps([{"id": "1", "role": "user", "text": "gammel", "timestamp": 0}]))
    store = SessionStore(storage, clock=clock)

    store.load()

    assert [s.id for s in store.sessions] == [existing.id]
    assert LEGACY_HISTORY_KEY in storage


def test_empty_legacy_history_yields_welcome_session(storage, clock):
    storage.set(LEGACY_HISTORY_KEY, "[]")
    store = SessionStore(storage, clock=clock)

    store.load()

    assert store.sessions[0].messages[0].text == WELCOME_MESSAGE


def test_create_session_goes_to_front_and_becomes_active(store):
    store.load()
    created = store.create_session()

    assert store.sessions[0].id == created.id
    assert store.active_session_id == created.id
    assert created.messages == []
    assert created.title == DEFAULT_CHAT_TITLE
    assert created.topic is Topic.GENERELT


def test_session_ids_stay_unique_when_the_clock_stands_still(storage):
    frozen = StepClock(step_seconds=0)
    store = SessionStore(storage, clock=frozen)

    ids = {store.create_session().id for _ in range(5)}

    assert len(ids) == 5


def test_deleting_every_session_leaves_exactly_one(store):
    store.load()
    for _ in range(3):
        store.create_session()

    for session in store.sessions:
        store.delete_session(session.id)

    assert len(store.sessions) == 1
    remaining = store.sessions[0]
    assert store.active_session_id == remaining.id
    assert remaining.messages[0].text == WELCOME_MESSAGE


def test_deleting_active_session_activates_most_recent_remaining(store):
    store.load()
    a = store.create_session()
    b = store.create_session()
    store.append_message(a.id, store.new_message("user", "nyeste aktivitet"))
    store.activate(b.id)

    store.delete_session(b.id)

    assert store.active_session_id == a.id


def test_deleting_inactive_session_keeps_active(store):
    store.load()
    a = store.create_session()
    b = store.create_session()

    store.delete_session(a.id)

    assert store.active_session_id == b.id


def test_unknown_session_raises(store):
    store.load()
    with pytest.raises(SessionNotFound):
        store.delete_session("nope")
    with pytest.raises(SessionNotFound):
        store.append_message("nope", store.new_message("user", "hej"))


def test_title_from_first_user_message_only(store):
    store.load()
    session = store.create_session()
    long_text = "Må jeg opsige en medarbejder under barselsorlov?"

    store.append_message(session.id, store.new_message("model", "Velkommen"))
    assert store.get(session.id).title == DEFAULT_CHAT_TITLE

    store.append_message(session.id, store.new_message("user", long_text))
    assert store.get(session.id).title == long_text[:30] + "..."

    store.append_message(session.id, store.new_message("user", "Et helt andet spørgsmål"))
    assert store.get(session.id).title == long_text[:30] + "..."


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Kort", "Kort"),
        ("x" * 30, "x" * 30),
        ("y" * 31, "y" * 30 + "..."),
    ],
)
def test_derive_title(text, expected):
    assert derive_title(text) == expected


def test_append_updates_timestamp_and_persists(store, storage):
    store.load()
    session = store.active_session
    before = session.updated_at

    store.append_message(session.id, store.new_message("user", "Hej"))

    assert store.get(session.id).updated_at > before
    persisted = deserialize_sessions(storage.get(SESSIONS_KEY))
    assert persisted[0].messages[-1].text == "Hej"


def test_set_topic_keeps_history(store, storage):
    store.load()
    session = store.active_session
    messages_before = list(session.messages)

    store.set_topic(session.id, Topic.GDPR)

    assert store.get(session.id).topic is Topic.GDPR
    assert store.get(session.id).messages == messages_before
    assert deserialize_sessions(storage.get(SESSIONS_KEY))[0].topic is Topic.GDPR


def test_history_for_returns_role_text_pairs(store):
    store.load()
    session = store.active_session
    store.append_message(session.id, store.new_message("user", "Spørgsmål"))

    history = store.history_for(session.id)

    assert [(h.role, h.text) for h in history] == [("model", WELCOME_MESSAGE), ("user", "Spørgsmål")]
    assert len(store.history_for(session.id, exclude_last=True)) == 1


def test_serialization_round_trip(store):
    store.load()
    session = store.create_session()
    store.append_message(
        session.id,
        store.new_message("model", "Se kilderne", [Source(title="Retsinformation", uri="https://www.retsinformation.dk")]),
    )
    store.set_topic(session.id, Topic.FERIE)

    restored = deserialize_sessions(serialize_sessions(store.sessions))

    assert restored == store.sessions


def test_reload_from_storage_reproduces_sessions(store, storage, clock):
    store.load()
    store.create_session()
    store.append_message(store.active_session_id, store.new_message("user", "Hej"))

    reloaded = SessionStore(storage, clock=clock)
    reloaded.load()

    expected = sorted(store.sessions, key=lambda s: s.updated_at, reverse=True)
    assert reloaded.sessions == expected


def test_messages_are_immutable(store):
    store.load()
    message = store.active_session.messages[0]
    with pytest.raises(Exception):
        message.text = "ændret"


class _BrokenStorage(MemoryStorage):
    def set(self, key, value):
        raise OSError("disk full")


def test_persist_failure_is_logged_not_raised(clock, caplog):
    store = SessionStore(_BrokenStorage(), clock=clock)

    store.load()

    assert len(store.sessions) == 1
    assert "Failed to persist chat sessions" in caplog.text


def test_persisted_json_uses_camel_case(store, storage):
    store.load()
    raw = json.loads(storage.get(SESSIONS_KEY))
    assert "updatedAt" in raw[0]
    assert isinstance(ChatMessage.model_validate(raw[0]["messages"][0]), ChatMessage)


def test_naive_and_aware_timestamps_load_as_utc(storage, clock):
    stored = [
        {"id": "1", "title": "Ældre", "messages": [], "updatedAt": "2025-01-01T10:00:00"},
        {
            "id": "2",
            "title": "Nyere",
            "messages": [{"id": "m", "role": "user", "text": "Hej", "timestamp": "2025-01-02T09:00:00"}],
            "updatedAt": "2025-01-02T10:00:00Z",
        },
    ]
    storage.set(SESSIONS_KEY, json.dumps(stored))
    store = SessionStore(storage, clock=clock)

    store.load()

    assert [s.id for s in store.sessions] == ["2", "1"]
    assert store.active_session_id == "2"
    assert all(s.updated_at.tzinfo is not None for s in store.sessions)
    assert store.get("2").messages[0].timestamp.tzinfo is not None

    store.delete_session("2")
    assert store.active_session_id == "1"


def test_set_topic_counts_as_activity(store):
    store.load()
    session = store.active_session
    before = session.updated_at

    store.set_topic(session.id, Topic.OVERENSKOMST)

    assert store.get(session.id).updated_at > before
