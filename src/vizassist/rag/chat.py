"""Chat pipeline: validate → persist → retrieve → prompt → complete → persist.

Only request validation errors reach the caller. Retrieval degrades to "no
documents" when embedding fails, and a failing completion provider yields a
fixed apology that is stored like any other answer.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vizassist.config import VizAssistConfig
from vizassist.context.models import DashboardContext
from vizassist.db.models import Message
from vizassist.db.storage import Storage
from vizassist.rag import llm_client
from vizassist.rag.embeddings import EmbeddingProvider, LiteLLMEmbedder
from vizassist.rag.prompts import build_system_prompt, recent_history

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = 1
DEFAULT_CONVERSATION_TITLE = "Dashboard Conversation"

APOLOGY = "I apologize, but I encountered an error while generating a response. Please try again."
EMPTY_FALLBACK = "I'm sorry, I couldn't generate a response."


class RequestValidationError(ValueError):
    """The chat request was malformed or referenced a missing conversation."""


# ------------------------------------------------------------------
# Wire models
# ------------------------------------------------------------------


class DashboardContextPayload(BaseModel):
    """Shape check for the dashboard context sent with a chat message.

    Unknown keys are kept so the stored context matches what the widget sent.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    filters: list[dict[str, Any]] = Field(default_factory=list)
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    worksheets: list[dict[str, Any]] = Field(default_factory=list)
    elements: list[dict[str, Any]] = Field(default_factory=list)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_id: int | None = Field(default=None, alias="conversationId")
    dashboard_context: DashboardContextPayload | None = Field(default=None, alias="dashboardContext")

    @field_validator("message")
    @classmethod
    def message_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message cannot be empty")
        return v

    def context_dict(self) -> dict[str, Any] | None:
        if self.dashboard_context is None:
            return None
        return self.dashboard_context.model_dump(exclude_unset=True)


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    role: str
    content: str
    created_at: str = Field(alias="createdAt")

    @classmethod
    def from_message(cls, message: Message) -> ChatResponse:
        created = message.created_at or datetime.now(timezone.utc)
        return cls(id=message.id, role=message.role, content=message.content, created_at=created.isoformat())

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class ChatResult:
    message: ChatResponse
    conversation_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message.to_dict(), "conversationId": self.conversation_id}


# ------------------------------------------------------------------
# Completion provider
# ------------------------------------------------------------------


class Completer(Protocol):
    def complete(self, system_prompt: str, history: Sequence[Message], user_message: str) -> str: ...


class LiteLLMCompleter:
    """Chat completion through ``litellm.completion()``; keeps the last *history_limit* turns."""

    def __init__(
        self,
        model: str = "openai/gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        history_limit: int = 10,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.history_limit = history_limit
        self.timeout = timeout

    def complete(self, system_prompt: str, history: Sequence[Message], user_message: str) -> str:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(recent_history(history, self.history_limit))
        messages.append({"role": "user", "content": user_message})
        return llm_client.complete(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
        )


# ------------------------------------------------------------------
# Service
# ------------------------------------------------------------------


class ChatService:
    """Answers dashboard questions with retrieval-augmented generation.

    Args:
        storage: Conversation, message and document store.
        embedder: Embedding provider used for the retrieval query.
        completer: Completion provider.
        config: Retrieval depth and assistant persona.
    """

    def __init__(
        self,
        storage: Storage,
        embedder: EmbeddingProvider,
        completer: Completer,
        config: VizAssistConfig | None = None,
    ) -> None:
        self.storage = storage
        self.embedder = embedder
        self.completer = completer
        self.config = config or VizAssistConfig()

    @classmethod
    def from_config(cls, storage: Storage, config: VizAssistConfig) -> ChatService:
        """Build a service wired to litellm-backed providers."""
        gen = config.generation
        return cls(
            storage,
            LiteLLMEmbedder(config.embedding.model, timeout=config.embedding.timeout),
            LiteLLMCompleter(
                gen.model,
                temperature=gen.temperature,
                max_tokens=gen.max_tokens,
                history_limit=gen.history_limit,
                timeout=gen.timeout,
            ),
            config,
        )

    def handle(self, payload: Mapping[str, Any] | ChatRequest) -> ChatResult:
        """Answer one chat message.

        Args:
            payload: ``{message, conversationId?, dashboardContext?}``.

        Returns:
            The stored assistant message and the conversation it belongs to.

        Raises:
            RequestValidationError: If the payload is malformed or names an
                unknown conversation.
        """
        request = _validate(payload)
        context_dict = request.context_dict()

        conversation_id = request.conversation_id
        if conversation_id is None:
            title = (context_dict or {}).get("title") or DEFAULT_CONVERSATION_TITLE
            conversation_id = self.storage.create_conversation(DEFAULT_USER_ID, title).id
        elif self.storage.get_conversation(conversation_id) is None:
            raise RequestValidationError(f"Conversation {conversation_id} not found")

        history = self.storage.list_conversation_messages(conversation_id)
        self.storage.create_message(conversation_id, "user", request.message, context=context_dict)

        documents = []
        query_embedding = self.embedder.embed(request.message)
        if query_embedding is not None:
            documents = self.storage.search_similar_documents(
                query_embedding, self.config.retrieval.top_k
            )
        logger.debug("Retrieved %d document(s) for conversation %d", len(documents), conversation_id)

        context = DashboardContext.from_dict(context_dict) if context_dict is not None else None
        system_prompt = build_system_prompt(context, documents, self.config.assistant.name)

        try:
            answer = self.completer.complete(system_prompt, history, request.message)
        except Exception as exc:
            logger.warning("Completion failed for conversation %d: %s", conversation_id, exc)
            answer = APOLOGY
        if not answer:
            answer = EMPTY_FALLBACK

        saved = self.storage.create_message(conversation_id, "assistant", answer)
        return ChatResult(ChatResponse.from_message(saved), conversation_id)

    def history(self, conversation_id: int) -> list[dict[str, Any]]:
        """Return a conversation's messages, oldest first, in response shape."""
        return [
            ChatResponse.from_message(m).to_dict()
            for m in self.storage.list_conversation_messages(conversation_id)
        ]


def _validate(payload: Mapping[str, Any] | ChatRequest) -> ChatRequest:
    if isinstance(payload, ChatRequest):
        return payload
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(str(exc)) from exc
