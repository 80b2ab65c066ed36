import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status

from arbejdsret.api.deps import ChatRequestGuard, get_chat_guard, get_gateway, get_session_store
from arbejdsret.models.domain import (
    ChatSession,
    LoadingState,
    NewChatRequest,
    PostMessageRequest,
    PostMessageResponse,
    SessionListResponse,
    SetTopicRequest,
    Topic,
    TopicItem,
)
from arbejdsret.services.errors import MissingCredentialError, SessionNotFound, TransportError
from arbejdsret.services.gemini import GeminiGateway
from arbejdsret.services.sessions import WELCOME_MESSAGE, SessionStore

router = APIRouter(prefix="/chats", tags=["chats"])


def _session_list(store: SessionStore) -> SessionListResponse:
    return SessionListResponse(active_session_id=store.active_session_id, sessions=store.sessions)


def _not_found(chat_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Chat {chat_id} not found.")


@router.get("", response_model=SessionListResponse)
async def get_chat_list(store: SessionStore = Depends(get_session_store)):
    """All chat sessions plus the active session id."""
    return _session_list(store)


@router.get("/topics", response_model=List[TopicItem])
async def get_topics():
    return [TopicItem(id=t, label=t.label) for t in Topic]


@router.post("", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_new_chat(
    body: Optional[NewChatRequest] = Body(default=None),
    store: SessionStore = Depends(get_session_store),
):
    """Creates a new chat session, seeded with a greeting, and activates it."""
    greeting = (body.initial_message if body else None) or WELCOME_MESSAGE
    return store.create_session(store.new_message("model", greeting))


@router.get("/{chat_id}", response_model=ChatSession)
async def get_chat(
    chat_id: str = Path(..., title="The ID of the chat session"),
    store: SessionStore = Depends(get_session_store),
):
    try:
        return store.get(chat_id)
    except SessionNotFound:
        raise _not_found(chat_id)


@router.delete("/{chat_id}", response_model=SessionListResponse)
async def delete_chat_session(
    chat_id: str = Path(..., title="The ID of the chat session to delete"),
    store: SessionStore = Depends(get_session_store),
):
    """Deletes a chat; the store always keeps at least one session."""
    try:
        store.delete_session(chat_id)
    except SessionNotFound:
        raise _not_found(chat_id)
    return _session_list(store)


@router.put("/{chat_id}/active", response_model=SessionListResponse)
async def activate_chat(
    chat_id: str = Path(..., title="The ID of the chat session to open"),
    store: SessionStore = Depends(get_session_store),
):
    try:
        store.activate(chat_id)
    except SessionNotFound:
        raise _not_found(chat_id)
    return _session_list(store)


@router.put("/{chat_id}/topic", response_model=ChatSession)
async def set_chat_topic(
    body: SetTopicRequest,
    chat_id: str = Path(..., title="The ID of the chat session"),
    store: SessionStore = Depends(get_session_store),
):
    try:
        return store.set_topic(chat_id, body.topic)
    except SessionNotFound:
        raise _not_found(chat_id)


@router.post("/{chat_id}/messages", response_model=PostMessageResponse)
async def post_message_to_chat(
    body: PostMessageRequest,
    chat_id: str = Path(..., title="The ID of the chat session"),
    store: SessionStore = Depends(get_session_store),
    gateway: GeminiGateway = Depends(get_gateway),
    guard: ChatRequestGuard = Depends(get_chat_guard),
):
    """
    Saves the user message, asks the model with the prior history and the
    session topic, saves the reply (with its sources) and returns both.
    A failed model call is answered with a model-role error message.
    """
    try:
        session = store.get(chat_id)
    except SessionNotFound:
        raise _not_found(chat_id)

    if not guard.begin(chat_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A message for this chat is already being answered.",
        )

    try:
        history = store.history_for(chat_id)
        user_message = store.new_message("user", body.text)
        store.append_message(chat_id, user_message)

        try:
            reply = await gateway.send_chat_message(history, user_message.text, session.topic)
            bot_message = store.new_message("model", reply.text, reply.sources)
            state = LoadingState.SUCCESS
        except Exception as e:
            logging.error(f"Error processing message for chat {chat_id}: {e}", exc_info=True)
            if isinstance(e, MissingCredentialError):
                text = e.user_message
            else:
                text = TransportError.user_message
            bot_message = store.new_message("model", text)
            state = LoadingState.ERROR

        try:
            store.append_message(chat_id, bot_message)
        except SessionNotFound:
            logging.info(f"Chat {chat_id} was deleted while waiting for the model; dropping the reply.")
            raise _not_found(chat_id)

        return PostMessageResponse(user_message=user_message, bot_message=bot_message, status=state)
    finally:
        guard.end(chat_id)
