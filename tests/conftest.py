"""Shared fixtures: fake Gen AI client, in-memory storage, deterministic clock."""

import datetime as _dt
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest

from arbejdsret.config import Settings
from arbejdsret.models.domain import ChatReply, LegalNewsItem
from arbejdsret.services.gemini import GeminiGateway
from arbejdsret.services.sessions import SessionStore
from arbejdsret.services.storage import MemoryStorage


class StepClock:
    """Returns a strictly increasing UTC instant on every call."""

    def __init__(self, start: Optional[_dt.datetime] = None, step_seconds: float = 1.0):
        self.now = start or _dt.datetime(2025, 1, 1, 9, 0, tzinfo=_dt.timezone.utc)
        self.step = _dt.timedelta(seconds=step_seconds)

    def __call__(self) -> _dt.datetime:
        current = self.now
        self.now = self.now + self.step
        return current


def make_response(text: Optional[str] = None, web_chunks: Optional[List[Any]] = None):
    """Build an object shaped like a GenerateContentResponse."""
    candidates = []
    if web_chunks is not None:
        chunks = [SimpleNamespace(web=w) for w in web_chunks]
        candidates = [SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))]
    return SimpleNamespace(text=text, candidates=candidates)


def web(title: Optional[str], uri: Optional[str]):
    return SimpleNamespace(title=title, uri=uri)


class FakeModels:
    def __init__(self, client: "FakeGenaiClient"):
        self.client = client

    async def generate_content(self, *, model, contents, config):
        self.client.calls.append({"model": model, "contents": contents, "config": config})
        if self.client.error is not None:
            raise self.client.error
        return self.client.response


class FakeChat:
    def __init__(self, client: "FakeGenaiClient"):
        self.client = client

    async def send_message(self, message, config=None):
        self.client.sent_messages.append(message)
        if self.client.error is not None:
            raise self.client.error
        return self.client.response


class FakeChats:
    def __init__(self, client: "FakeGenaiClient"):
        self.client = client

    def create(self, *, model, config=None, history=None):
        self.client.chat_creations.append({"model": model, "config": config, "history": history})
        return FakeChat(self.client)


class FakeGenaiClient:
    def __init__(self):
        self.response = make_response("ok")
        self.error: Optional[Exception] = None
        self.calls: List[dict] = []
        self.chat_creations: List[dict] = []
        self.sent_messages: List[str] = []
        self.api_keys: List[str] = []
        self.aio = SimpleNamespace(models=FakeModels(self), chats=FakeChats(self))

    def factory(self, **kwargs):
        self.api_keys.append(kwargs.get("api_key"))
        return self


class FakeGateway:
    """Stands in for GeminiGateway in the HTTP tests."""

    def __init__(self):
        self.termination_result = None
        self.analysis = "Analyse"
        self.chat_reply = ChatReply(text="Svar", sources=[])
        self.news: List[LegalNewsItem] = []
        self.error: Optional[Exception] = None
        self.termination_requests = []
        self.documents = []
        self.chat_calls = []

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    async def generate_termination_package(self, request):
        self.termination_requests.append(request)
        self._maybe_fail()
        return self.termination_result

    async def analyze_legal_document(self, document):
        self.documents.append(document)
        self._maybe_fail()
        return self.analysis

    async def send_chat_message(self, history, message, topic=None):
        self.chat_calls.append({"history": list(history), "message": message, "topic": topic})
        self._maybe_fail()
        return self.chat_reply

    async def fetch_legal_news(self):
        self._maybe_fail()
        return self.news


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, clock):
    return SessionStore(storage, clock=clock)


@pytest.fixture
def settings():
    return Settings(_env_file=None, api_key="test-key", model_generation="gemini-test")


@pytest.fixture
def fake_client():
    return FakeGenaiClient()


@pytest.fixture
def gateway(settings, fake_client):
    return GeminiGateway(settings, client_factory=fake_client.factory)


@pytest.fixture
def fake_gateway():
    return FakeGateway()
