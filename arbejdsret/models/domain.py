"""Pydantic data models shared across the application.

Field names are snake_case in Python and camelCase on the wire, both in the
persisted session JSON and in the HTTP payloads.
"""

from __future__ import annotations

import datetime as _dt
import uuid
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def _as_utc(value: _dt.datetime) -> _dt.datetime:
    # naive instants in stored data are read as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Termination ---
class EmployeeData(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    hire_date: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    is_funktionaer: bool = True  # salaried under Funktionærloven


class TerminationRequest(CamelModel):
    employee: EmployeeData
    termination_date: str = Field(default_factory=lambda: _dt.date.today().isoformat())
    reason: str = Field(..., min_length=1)
    notes: Optional[str] = None


class TerminationResponse(CamelModel):
    is_valid_reason: bool
    calculated_notice_period: str  # e.g. "3 måneder"
    last_working_day: str
    legal_reference: str
    letter_content: str
    explanation: str


# --- Chat ---
class Topic(str, Enum):
    GENERELT = "Generelt"
    OPSIGELSE = "Opsigelse"
    OVERENSKOMST = "Overenskomst"
    GDPR = "GDPR"
    FERIE = "Ferie"

    @property
    def label(self) -> str:
        return _TOPIC_LABELS[self]


_TOPIC_LABELS = {
    Topic.GENERELT: "Generelt",
    Topic.OPSIGELSE: "Opsigelse & Varsel",
    Topic.OVERENSKOMST: "Overenskomst",
    Topic.GDPR: "GDPR & Data",
    Topic.FERIE: "Ferie & Barsel",
}

DEFAULT_TOPIC = Topic.GENERELT


class Source(CamelModel):
    model_config = ConfigDict(frozen=True)

    title: str
    uri: str


class ChatMessage(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "model"]
    text: str
    timestamp: _dt.datetime = Field(default_factory=_utcnow)
    sources: Optional[List[Source]] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: _dt.datetime) -> _dt.datetime:
        return _as_utc(value)


class ChatSession(CamelModel):
    id: str
    title: str
    messages: List[ChatMessage] = []
    updated_at: _dt.datetime
    topic: Topic = DEFAULT_TOPIC

    @field_validator("updated_at")
    @classmethod
    def updated_at_as_utc(cls, value: _dt.datetime) -> _dt.datetime:
        return _as_utc(value)


class HistoryTurn(BaseModel):
    """A role/text pair as handed to the model."""

    role: Literal["user", "model"]
    text: str


class ChatReply(BaseModel):
    text: str
    sources: List[Source] = []


class LoadingState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


# --- Dashboard ---
class LegalNewsItem(CamelModel):
    date: str
    title: str
    tag: str
    summary: Optional[str] = None


# --- API I/O ---
class SessionListResponse(CamelModel):
    active_session_id: Optional[str]
    sessions: List[ChatSession]


class NewChatRequest(CamelModel):
    initial_message: Optional[str] = None


class PostMessageRequest(CamelModel):
    text: str = Field(..., min_length=1)


class PostMessageResponse(CamelModel):
    user_message: ChatMessage
    bot_message: ChatMessage
    status: LoadingState


class SetTopicRequest(CamelModel):
    topic: Topic


class TopicItem(CamelModel):
    id: Topic
    label: str


class AnalyzeRequest(CamelModel):
    data: str = Field(..., min_length=1)  # raw text, base64 or a data URL
    mime_type: Optional[str] = None
    filename: Optional[str] = None


class AnalyzeResponse(CamelModel):
    analysis: str
    kind: str
    mime_type: str
    filename: Optional[str] = None
    preview: Optional[str] = None


class ActionCard(CamelModel):
    view: str
    title: str
    description: str


class DashboardResponse(CamelModel):
    cards: List[ActionCard]
    news: List[LegalNewsItem]
    news_is_live: bool
