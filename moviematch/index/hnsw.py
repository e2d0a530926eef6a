"""Approximate cosine index backed by a faiss HNSW graph."""

from __future__ import annotations

import logging

import faiss
import numpy as np

from moviematch import config
from moviematch.index.base import NeighbourIndex, normalize_rows

logger = logging.getLogger(__name__)


class HNSWIndex(NeighbourIndex):
    """Hierarchical navigable small-world graph over L2-normalised vectors.

    Cosine similarity is the inner product of unit vectors, so the graph is
    built with ``METRIC_INNER_PRODUCT`` on normalised rows.  Every build
    starts from an empty graph; faiss draws node levels from a fixed seed,
    which keeps rebuilds over unchanged contents reproducible.

    Candidates returned by the graph are re-scored against the normalised
    matrix so ties and float noise cannot reorder results between builds.

    Args:
        m: Graph out-degree (``M``).
        ef_construction: Candidate list size while inserting.
        ef_search: Candidate list size while querying; raised to ``k`` when
            a query asks for more neighbours.
    """

    def __init__(
        self,
        m: int = config.HNSW_M,
        ef_construction: int = config.HNSW_EF_CONSTRUCTION,
        ef_search: int = config.HNSW_EF_SEARCH,
    ) -> None:
        self._m = m
        self._ef_construction = ef_construction
        self._ef_search = ef_search
        self._index: faiss.IndexHNSWFlat | None = None
        self._matrix: np.ndarray | None = None

    def build(self, vectors: np.ndarray) -> None:
        matrix = normalize_rows(np.asarray(vectors, dtype=np.float32))
        n, dimension = matrix.shape
        index = faiss.IndexHNSWFlat(dimension, self._m, faiss.METRIC_INNER_PRODUCT)
        index.hnsw.efConstruction = self._ef_construction
        if n:
            index.add(np.ascontiguousarray(matrix))
        self._index = index
        self._matrix = matrix
        logger.debug("HNSW index built over %d vectors (dim=%d).", n, dimension)

    def search(self, query: np.ndarray, k: int) -> list[tuple[int, float]]:
        if self._index is None or k <= 0 or self._index.ntotal == 0:
            return []
        k = min(k, self._index.ntotal)
        q = normalize_rows(np.asarray(query, dtype=np.float32).reshape(1, -1))
        self._index.hnsw.efSearch = max(self._ef_search, k)
        _, labels = self._index.search(q, k)

        handles = sorted({int(h) for h in labels[0] if h >= 0})
        sims = self._matrix[handles] @ q[0]
        scored = sorted(zip(handles, sims.tolist()), key=lambda pair: -pair[1])
        return [(h, float(s)) for h, s in scored[:k]]

    @property
    def built(self) -> bool:
        return self._index is not None

    @property
    def size(self) -> int:
        return 0 if self._index is None else int(self._index.ntotal)
