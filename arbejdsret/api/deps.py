import logging
from functools import lru_cache
from typing import Optional, Set

from fastapi import HTTPException, status

from arbejdsret.config import get_settings
from arbejdsret.services.errors import GatewayError, MissingCredentialError
from arbejdsret.services.gemini import GeminiGateway
from arbejdsret.services.sessions import SessionStore
from arbejdsret.services.storage import KeyValueStorage, build_storage


class ChatRequestGuard:
    """Tracks which sessions have a model call in flight.

    The views reject a second send for a session while one is outstanding,
    the same way the chat input is disabled while loading.
    """

    def __init__(self) -> None:
        self._in_flight: Set[str] = set()

    def begin(self, session_id: str) -> bool:
        if session_id in self._in_flight:
            return False
        self._in_flight.add(session_id)
        return True

    def end(self, session_id: str) -> None:
        self._in_flight.discard(session_id)

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._in_flight


@lru_cache()
def get_storage() -> KeyValueStorage:
    """Provides the configured key/value storage backend."""
    settings = get_settings()
    logging.info("Initializing %s storage...", settings.storage_backend)
    return build_storage(settings)


@lru_cache()
def get_session_store() -> SessionStore:
    """Provides the process-wide SessionStore (loaded once)."""
    store = SessionStore(get_storage(), title_length=get_settings().max_chat_title_length)
    store.load()
    return store


@lru_cache()
def get_gateway() -> GeminiGateway:
    logging.info("Initializing GeminiGateway...")
    return GeminiGateway(get_settings())


@lru_cache()
def get_chat_guard() -> ChatRequestGuard:
    return ChatRequestGuard()


def gateway_http_error(exc: GatewayError, detail: Optional[str] = None) -> HTTPException:
    """Map a gateway failure onto the HTTP error shown by the views."""
    if isinstance(exc, MissingCredentialError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.user_message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail or exc.user_message)
