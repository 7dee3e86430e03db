"""Embedding provider adapter.

A missing embedding is never fatal: ``embed()`` returns None on any provider
failure and callers skip retrieval augmentation for that request.
"""

from __future__ import annotations

import logging
from typing import Protocol

from vizassist.rag import llm_client
from vizassist.rag.chunker import normalize_text

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that turns text into a vector, or None when it cannot."""

    def embed(self, text: str) -> list[float] | None: ...


class LiteLLMEmbedder:
    """Embed text through ``litellm.embedding()``.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        timeout: Per-request timeout in seconds.
        num_retries: Retries on transient provider errors.
    """

    def __init__(
        self,
        model: str = "openai/text-embedding-ada-002",
        timeout: float = 30.0,
        num_retries: int = 2,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.num_retries = num_retries

    def embed(self, text: str) -> list[float] | None:
        processed = normalize_text(text)
        if not processed:
            return None
        try:
            vector = llm_client.embed(
                self.model, processed, timeout=self.timeout, num_retries=self.num_retries
            )
        except Exception as exc:
            logger.warning("Embedding request to %s failed: %s", self.model, exc)
            return None

        try:
            result = [float(v) for v in vector]
        except (TypeError, ValueError) as exc:
            logger.warning("Malformed embedding from %s: %s", self.model, exc)
            return None
        if not result:
            logger.warning("Empty embedding returned by %s", self.model)
            return None
        return result
