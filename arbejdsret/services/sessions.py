"""Chat session store – multi-session persistence on a key/value blob storage.

The whole collection is serialised as one JSON array under ``SESSIONS_KEY``.
An older build kept a single conversation (a bare array of messages) under
``LEGACY_HISTORY_KEY``; it is migrated into a one-session collection the first
time it is seen and then removed.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from arbejdsret.models.domain import (
    DEFAULT_TOPIC,
    ChatMessage,
    ChatSession,
    HistoryTurn,
    Source,
    Topic,
)
from .errors import SessionNotFound
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

SESSIONS_KEY = "arbejdsret.chatSessions"
LEGACY_HISTORY_KEY = "arbejdsret.chatHistory"

DEFAULT_CHAT_TITLE = "Ny samtale"
DEFAULT_TITLE_LENGTH = 30
WELCOME_MESSAGE = (
    "Hej. Jeg er din juridiske AI-assistent. Vælg et emne ovenfor eller stil "
    "et spørgsmål for at komme i gang."
)

_sessions_adapter = TypeAdapter(List[ChatSession])
_messages_adapter = TypeAdapter(List[ChatMessage])


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def derive_title(text: str, max_len: int = DEFAULT_TITLE_LENGTH) -> str:
    return text[:max_len] + ("..." if len(text) > max_len else "")


def serialize_sessions(sessions: List[ChatSession]) -> str:
    return _sessions_adapter.dump_json(sessions, by_alias=True).decode("utf-8")


def deserialize_sessions(raw: str) -> List[ChatSession]:
    return _sessions_adapter.validate_json(raw)


class SessionStore:
    """Owns the list of chat sessions and the active-session pointer.

    Every mutation re-writes the full collection to the injected storage.
    The store never exposes a state with zero sessions once loaded.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], _dt.datetime] = _utcnow,
        title_length: int = DEFAULT_TITLE_LENGTH,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.title_length = title_length
        self._sessions: List[ChatSession] = []
        self._active_id: Optional[str] = None
        self._loaded = False

    # ------------------------------------------------------------------ #
    # read accessors                                                     #
    # ------------------------------------------------------------------ #
    @property
    def sessions(self) -> List[ChatSession]:
        return list(self._sessions)

    @property
    def active_session_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_session(self) -> Optional[ChatSession]:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def get(self, session_id: str) -> ChatSession:
        for session in self._sessions:
            if session.id == session_id:
                return session
        raise SessionNotFound(session_id)

    def history_for(self, session_id: str, exclude_last: bool = False) -> List[HistoryTurn]:
        """Role/text pairs of a session in conversation order."""
        messages = self.get(session_id).messages
        if exclude_last:
            messages = messages[:-1]
        return [HistoryTurn(role=m.role, text=m.text) for m in messages]

    # ------------------------------------------------------------------ #
    # load / migration                                                   #
    # ------------------------------------------------------------------ #
    def load(self) -> None:
        """Read persisted state once; later calls are no-ops."""
        if self._loaded:
            return
        self._loaded = True

        if self._load_sessions():
            return
        if self._migrate_legacy():
            return
        self._sessions = []
        self.create_session(self.new_message("model", WELCOME_MESSAGE))
        logger.info("No stored chats – created welcome session %s", self._active_id)

    def _load_sessions(self) -> bool:
        raw = self.storage.get(SESSIONS_KEY)
        if not raw:
            return False
        try:
            sessions = deserialize_sessions(raw)
        except (ValidationError, ValueError) as exc:
            logger.warning("Stored chat sessions are unreadable, ignoring them: %s", exc)
            return False
        if not sessions:
            return False

        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        unique: dict[str, ChatSession] = {}
        for session in sessions:
            if session.id in unique:
                logger.warning("Dropping duplicate stored session id %s", session.id)
                continue
            unique[session.id] = session
        sessions = list(unique.values())
        self._sessions = sessions
        self._active_id = sessions[0].id
        logger.info("Loaded %d chat sessions", len(sessions))
        return True

    def _migrate_legacy(self) -> bool:
        raw = self.storage.get(LEGACY_HISTORY_KEY)
        if not raw:
            return False
        try:
            messages = _messages_adapter.validate_json(raw)
        except (ValidationError, ValueError) as exc:
            logger.warning("Legacy chat history is unreadable, ignoring it: %s", exc)
            return False
        if not messages:
            return False

        now = self.clock()
        first_user = next((m for m in messages if m.role == "user"), None)
        session = ChatSession(
            id=self._new_session_id(now),
            title=derive_title(first_user.text, self.title_length) if first_user else DEFAULT_CHAT_TITLE,
            messages=messages,
            updated_at=now,
            topic=DEFAULT_TOPIC,
        )
        self._sessions = [session]
        self._active_id = session.id
        self._persist()
        self.storage.remove(LEGACY_HISTORY_KEY)
        logger.info("Migrated legacy chat history (%d messages) into session %s", len(messages), session.id)
        return True

    # ------------------------------------------------------------------ #
    # mutations                                                          #
    # ------------------------------------------------------------------ #
    def new_message(self, role: str, text: str, sources: Optional[List[Source]] = None) -> ChatMessage:
        return ChatMessage(role=role, text=text, timestamp=self.clock(), sources=sources or None)

    def create_session(self, initial_message: Optional[ChatMessage] = None) -> ChatSession:
        now = self.clock()
        session = ChatSession(
            id=self._new_session_id(now),
            title=DEFAULT_CHAT_TITLE,
            messages=[initial_message] if initial_message else [],
            updated_at=now,
            topic=DEFAULT_TOPIC,
        )
        if initial_message is not None and initial_message.role == "user":
            session.title = derive_title(initial_message.text, self.title_length)
        self._sessions.insert(0, session)
        self._active_id = session.id
        self._persist()
        logger.info("Created chat session %s", session.id)
        return session

    def delete_session(self, session_id: str) -> None:
        session = self.get(session_id)
        self._sessions.remove(session)
        logger.info("Deleted chat session %s", session_id)

        if self._active_id == session_id:
            if self._sessions:
                newest = max(self._sessions, key=lambda s: s.updated_at)
                self._active_id = newest.id
            else:
                self._active_id = None
        self._persist()

        if not self._sessions:
            self.create_session(self.new_message("model", WELCOME_MESSAGE))

    def activate(self, session_id: str) -> ChatSession:
        session = self.get(session_id)
        self._active_id = session.id
        return session

    def append_message(self, session_id: str, message: ChatMessage) -> ChatSession:
        session = self.get(session_id)
        first_user = message.role == "user" and not any(m.role == "user" for m in session.messages)

        session.messages.append(message)
        session.updated_at = self.clock()
        if first_user and session.title == DEFAULT_CHAT_TITLE:
            session.title = derive_title(message.text, self.title_length)
            logger.debug("Session %s titled '%s'", session_id, session.title)
        self._persist()
        return session

    def set_topic(self, session_id: str, topic: Topic) -> ChatSession:
        session = self.get(session_id)
        session.topic = Topic(topic)
        session.updated_at = self.clock()
        self._persist()
        return session

    # ------------------------------------------------------------------ #
    # internals                                                          #
    # ------------------------------------------------------------------ #
    def _new_session_id(self, now: _dt.datetime) -> str:
        millis = int(now.timestamp() * 1000)
        taken = {s.id for s in self._sessions}
        while str(millis) in taken:
            millis += 1
        return str(millis)

    def _persist(self) -> None:
        try:
            if self._sessions:
                self.storage.set(SESSIONS_KEY, serialize_sessions(self._sessions))
            else:
                self.storage.remove(SESSIONS_KEY)
        except Exception as exc:
            # best effort, same as a full browser storage quota
            logger.error("Failed to persist chat sessions: %s", exc, exc_info=True)
