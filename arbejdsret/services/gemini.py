"""Gemini gateway – the three request shapes the views need (plus the news feed).

Every call is stateless: the API key is checked and a fresh client is built per
call, so a key added to the environment after start-up is picked up and a
missing key fails before any network traffic.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Callable, List, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as gt
from pydantic import TypeAdapter, ValidationError

from arbejdsret.config import Settings
from arbejdsret.models.domain import (
    ChatReply,
    HistoryTurn,
    LegalNewsItem,
    Source,
    TerminationRequest,
    TerminationResponse,
    Topic,
)
from . import prompts
from .documents import DocumentContent
from .errors import (
    EmptyResponseError,
    MalformedResponseError,
    MissingCredentialError,
    TransportError,
)

logger = logging.getLogger(__name__)

ANALYSIS_FALLBACK = "Kunne ikke analysere dokumentet."
CHAT_FALLBACK = "Beklager, jeg kunne ikke generere et svar."
SOURCE_TITLE_PLACEHOLDER = "Kilde"
SOURCE_URI_PLACEHOLDER = "#"

_news_adapter = TypeAdapter(List[LegalNewsItem])

ClientFactory = Callable[..., genai.Client]


def _strip_code_fence(text: str) -> str:
    return text.strip().removeprefix("```json").removeprefix("```").removesuffix("```").strip()


def _make_part(data: bytes | str, mime_type: str = "text/plain") -> gt.Part:
    if isinstance(data, bytes):
        return gt.Part(inline_data=gt.Blob(mime_type=mime_type, data=data))
    return gt.Part(text=data)


def history_to_contents(history: Sequence[HistoryTurn]) -> List[gt.Content]:
    """Convert role/text pairs into conversational turns, order preserved."""
    return [gt.Content(role=turn.role, parts=[_make_part(turn.text)]) for turn in history]


def extract_sources(response: Any) -> List[Source]:
    """Pull web citations out of the grounding metadata, unique by uri.

    The first occurrence of a uri wins and the original order is kept. Missing
    titles/uris are replaced with placeholders.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    unique: "OrderedDict[str, Source]" = OrderedDict()
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        uri = getattr(web, "uri", None) or SOURCE_URI_PLACEHOLDER
        if uri not in unique:
            unique[uri] = Source(title=getattr(web, "title", None) or SOURCE_TITLE_PLACEHOLDER, uri=uri)
    return list(unique.values())


class GeminiGateway:
    """Wrapper around the Google Gen AI SDK for the HR agents."""

    def __init__(self, settings: Settings, client_factory: ClientFactory = genai.Client) -> None:
        self.settings = settings
        self.client_factory = client_factory
        self.model = settings.model_generation

    # ---------- plumbing -------------------------------------------------------
    def _get_client(self) -> genai.Client:
        api_key = self.settings.api_key.get_secret_value() if self.settings.api_key else ""
        if not api_key:
            # never log the key (or the settings object) itself
            logger.error("API key is missing from the environment (API_KEY / GEMINI_API_KEY).")
            raise MissingCredentialError("No Gemini API key configured")
        return self.client_factory(api_key=api_key)

    async def _generate(self, client: genai.Client, contents: Any, config: gt.GenerateContentConfig) -> Any:
        try:
            return await client.aio.models.generate_content(model=self.model, contents=contents, config=config)
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.error("Gen AI call failed: %s", exc, exc_info=True)
            raise TransportError(f"Gemini request failed: {exc}") from exc

    # ---------- termination package -------------------------------------------
    async def generate_termination_package(self, request: TerminationRequest) -> TerminationResponse:
        client = self._get_client()
        config = gt.GenerateContentConfig(
            system_instruction=prompts.SYSTEM_INSTRUCTION_BASE,
            response_mime_type="application/json",
            response_schema=prompts.TERMINATION_SCHEMA,
        )
        logger.info("Generating termination package (funktionær=%s)", request.employee.is_funktionaer)
        resp = await self._generate(client, prompts.termination_prompt(request), config)

        text = getattr(resp, "text", None)
        if not text:
            logger.error("Gemini returned no text for the termination package")
            raise EmptyResponseError("Empty response for termination package")

        try:
            return TerminationResponse.model_validate_json(_strip_code_fence(text), strict=True)
        except ValidationError as exc:
            logger.error("Termination package did not match the schema: %s", exc)
            raise MalformedResponseError(f"Malformed termination package: {exc}") from exc

    # ---------- document analysis ---------------------------------------------
    async def analyze_legal_document(self, document: DocumentContent) -> str:
        client = self._get_client()

        if document.kind.is_text:
            parts = [_make_part(prompts.document_text_prompt(document.data))]
        else:
            parts = [_make_part(document.raw_bytes(), document.mime_type)]
        parts.append(_make_part(prompts.DOCUMENT_ANALYSIS_INSTRUCTION))

        logger.info("Analysing %s document '%s'", document.kind.value, document.filename or "-")
        resp = await self._generate(
            client,
            gt.Content(role="user", parts=parts),
            gt.GenerateContentConfig(system_instruction=prompts.SYSTEM_INSTRUCTION_BASE),
        )
        text = getattr(resp, "text", None)
        if not text:
            logger.warning("Empty analysis response for '%s'", document.filename or "-")
            return ANALYSIS_FALLBACK
        return text

    # ---------- grounded chat --------------------------------------------------
    async def send_chat_message(
        self,
        history: Sequence[HistoryTurn],
        message: str,
        topic: Topic | str | None = None,
    ) -> ChatReply:
        client = self._get_client()
        chat = client.aio.chats.create(
            model=self.model,
            history=history_to_contents(history),
            config=gt.GenerateContentConfig(
                system_instruction=prompts.chat_system_instruction(topic),
                tools=[gt.Tool(google_search=gt.GoogleSearch())],
            ),
        )

        try:
            resp = await chat.send_message(message)
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.error("Gen AI chat call failed: %s", exc, exc_info=True)
            raise TransportError(f"Gemini chat request failed: {exc}") from exc

        text = getattr(resp, "text", None) or CHAT_FALLBACK
        sources = extract_sources(resp)
        logger.info("Chat reply: %d chars, %d sources", len(text), len(sources))
        return ChatReply(text=text, sources=sources)

    # ---------- dashboard news -------------------------------------------------
    async def fetch_legal_news(self) -> List[LegalNewsItem]:
        client = self._get_client()
        resp = await self._generate(
            client,
            prompts.NEWS_PROMPT,
            gt.GenerateContentConfig(
                system_instruction=prompts.NEWS_SYSTEM_INSTRUCTION,
                tools=[gt.Tool(google_search=gt.GoogleSearch())],
                response_mime_type="application/json",
                response_schema=prompts.NEWS_SCHEMA,
            ),
        )
        text = getattr(resp, "text", None)
        if not text:
            return []
        try:
            return _news_adapter.validate_json(_strip_code_fence(text))
        except ValidationError as exc:
            logger.error("Failed to parse news json: %s", exc)
            return []
