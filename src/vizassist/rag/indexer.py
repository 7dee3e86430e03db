"""Document indexing: chunk → embed → store."""

from __future__ import annotations

import logging
from typing import Any

from vizassist.db.models import Document
from vizassist.db.storage import Storage
from vizassist.rag.chunker import chunk_spans
from vizassist.rag.embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)

# Built-in chart-reading notes used to seed an empty knowledge base.
SAMPLE_DOCUMENTS: tuple[tuple[str, str], ...] = (
    (
        "Understanding Bar Charts",
        "Bar charts display categorical data with rectangular bars. The heights of the bars "
        "represent the values. Horizontal bar charts are useful when category labels are long. "
        "Look for the tallest/shortest bars to identify max/min values.",
    ),
    (
        "Reading Line Charts",
        "Line charts display data points connected by straight line segments. They're ideal for "
        "showing trends over time. Look for slopes to understand rate of change, peaks/valleys for "
        "maximum/minimum values, and intersections for when series cross.",
    ),
    (
        "Interpreting Pie Charts",
        "Pie charts show the proportion of categories as slices of a circle. The entire circle "
        "represents 100% of the data. Each slice's size corresponds to its percentage of the whole. "
        "Larger slices represent higher percentages.",
    ),
    (
        "Dashboard KPI Analysis",
        "Key Performance Indicators (KPIs) are critical metrics that measure success. When analyzing "
        "KPIs, compare against targets, look for trends over time, and identify correlations with "
        "other metrics. Red typically indicates below target, green above target.",
    ),
    (
        "Common Tableau Terms",
        "Measures: Numeric values that can be aggregated. Dimensions: Categorical fields used for "
        "grouping. Filters: Limit the data shown. Parameters: User inputs that change the "
        "visualization. Worksheets: Individual visualizations. Dashboards: Collections of worksheets.",
    ),
)


class DocumentIndexer:
    """Embed and store documents, splitting long ones into overlapping chunks.

    Args:
        storage: Destination store.
        embedder: Embedding provider.
        max_length: Content longer than this is chunked.
        overlap: Characters shared by consecutive chunks.
    """

    def __init__(
        self,
        storage: Storage,
        embedder: EmbeddingProvider,
        max_length: int = 1000,
        overlap: int = 200,
    ) -> None:
        self.storage = storage
        self.embedder = embedder
        self.max_length = max_length
        self.overlap = overlap

    def add_document(
        self, title: str, content: str, metadata: dict[str, Any] | None = None
    ) -> list[Document]:
        """Index one document.

        Returns:
            The stored documents: one for short content, one per chunk
            otherwise. Chunks whose embedding failed are not stored.
        """
        base_meta = dict(metadata or {})
        if len(content) <= self.max_length:
            stored = self._store(title, content, base_meta)
            return [stored] if stored is not None else []

        spans = chunk_spans(content, self.max_length, self.overlap)
        documents = []
        for i, span in enumerate(spans):
            meta = {
                **base_meta,
                "parent_title": title,
                "chunk_index": i,
                "chunk_count": len(spans),
                "start": span.start,
                "end": span.end,
            }
            stored = self._store(f"{title} (part {i + 1}/{len(spans)})", span.text, meta)
            if stored is not None:
                documents.append(stored)
        logger.info("Indexed %r: %d/%d chunk(s) stored", title, len(documents), len(spans))
        return documents

    def seed_samples(self) -> list[Document]:
        """Store the built-in sample notes whose titles are not present yet."""
        existing = {d.title for d in self.storage.list_documents()}
        documents = []
        for title, content in SAMPLE_DOCUMENTS:
            if title in existing:
                continue
            documents.extend(self.add_document(title, content, {"source": "sample"}))
        return documents

    def _store(self, title: str, content: str, metadata: dict[str, Any]) -> Document | None:
        embedding = self.embedder.embed(content)
        if embedding is None:
            logger.warning("Skipping %r: no embedding produced", title)
            return None
        return self.storage.create_document(title, content, embedding, metadata)
