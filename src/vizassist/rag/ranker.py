"""Cosine-similarity ranking over an in-memory document corpus.

Linear scan: O(corpus size × vector dimension). Callers depend only on
``rank()`` / ``search()``, so an indexed backend can replace this module
without changing their contract.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from vizassist.db.models import Document


@dataclass(frozen=True)
class SimilarityResult:
    """A corpus document and its cosine similarity to the query (in [-1, 1])."""

    document: Document
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of *a* and *b*; 0.0 if either has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"dimension mismatch: {va.shape[0]} != {vb.shape[0]}")
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb)) / (norm_a * norm_b)
    # Rounding can push identical vectors a hair past 1.0.
    return max(-1.0, min(1.0, score))


def rank(
    query_embedding: Sequence[float],
    corpus: Iterable[Document],
    limit: int = 3,
) -> list[SimilarityResult]:
    """Score every comparable document in *corpus* and return the top *limit*.

    Documents without an embedding, or whose embedding length differs from
    the query's, are skipped. Equal scores keep corpus order.
    """
    if limit <= 0:
        return []

    dims = len(query_embedding)
    scored: list[SimilarityResult] = []
    for doc in corpus:
        if doc.embedding is None or len(doc.embedding) != dims:
            continue
        scored.append(SimilarityResult(doc, cosine_similarity(query_embedding, doc.embedding)))

    # list.sort is stable, so ties stay in corpus order
    scored.sort(key=lambda r: r.score, reverse=True)
    return scored[:limit]


def search(
    query_embedding: Sequence[float],
    corpus: Iterable[Document],
    limit: int = 3,
) -> list[Document]:
    """Return the *limit* documents most similar to *query_embedding*, best first."""
    return [r.document for r in rank(query_embedding, corpus, limit)]
