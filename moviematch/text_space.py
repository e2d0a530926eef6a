"""Text embedding space: append-only description vectors plus a neighbour index."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

import numpy as np

from moviematch import config
from moviematch.errors import ConfigurationError
from moviematch.index.base import NeighbourIndex
from moviematch.index.exact import ExactIndex
from moviematch.index.hnsw import HNSWIndex
from moviematch.models import as_embedding

logger = logging.getLogger(__name__)

IndexFactory = Callable[[], NeighbourIndex]

_BACKENDS: dict[str, IndexFactory] = {
    "exact": ExactIndex,
    "hnsw": HNSWIndex,
}


def index_factory_for(backend: str) -> IndexFactory:
    """Return the index constructor registered under *backend*.

    Raises:
        ConfigurationError: If *backend* is not ``"exact"`` or ``"hnsw"``.
    """
    try:
        return _BACKENDS[backend]
    except KeyError:
        raise ConfigurationError(
            f"Unknown index backend {backend!r}; expected one of {sorted(_BACKENDS)}"
        ) from None


class TextEmbeddingSpace:
    """Ordered collection of description embeddings searchable by cosine.

    The stored embeddings are the source of truth; the index is rebuilt from
    them and never read back.  Insertion order gives each embedding a stable
    integer handle.  New embeddings only become searchable at the next
    :meth:`build`, or at the first query if the index was never built.

    Args:
        dimension: Length of every embedding in the space.
        index_factory: Zero-argument callable returning a fresh
            :class:`~moviematch.index.base.NeighbourIndex`.  Defaults to the
            backend named by ``config.INDEX_BACKEND``.

    Raises:
        ConfigurationError: If *dimension* is not a positive integer.
    """

    def __init__(self, dimension: int, index_factory: IndexFactory | None = None) -> None:
        if isinstance(dimension, bool) or not isinstance(dimension, int) or dimension <= 0:
            raise ConfigurationError(
                f"Embedding dimension must be a positive integer, got {dimension!r}"
            )
        self._dimension = dimension
        self._index_factory = index_factory or index_factory_for(config.INDEX_BACKEND)
        self._vectors: list[np.ndarray] = []
        self._index: NeighbourIndex = self._index_factory()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def built(self) -> bool:
        """Whether an index has been built at least once."""
        return self._index.built

    @property
    def indexed_count(self) -> int:
        """Number of embeddings visible to searches."""
        return self._index.size

    def __len__(self) -> int:
        return len(self._vectors)

    def vector(self, handle: int) -> np.ndarray:
        """Return the read-only embedding stored under *handle*."""
        return self._vectors[handle]

    def insert(self, embedding: Any) -> int:
        """Append a copy of *embedding* and return its handle.

        The index is left untouched; call :meth:`build` after a batch of
        insertions.

        Raises:
            ConfigurationError: If the embedding length differs from
                :attr:`dimension`.
        """
        vec = self._checked(embedding)
        self._vectors.append(vec)
        return len(self._vectors) - 1

    def build(self) -> None:
        """Rebuild the index from every stored embedding."""
        index = self._index_factory()
        index.build(self._matrix())
        self._index = index
        logger.info("Text index rebuilt over %d embeddings.", len(self._vectors))

    def neighbours(self, query: Any, k: int) -> list[tuple[int, float]]:
        """Return up to *k* ``(handle, similarity)`` pairs, most similar first.

        Builds the index first if it has never been built.
        """
        q = self._checked(query)
        if not self._index.built:
            logger.debug("Index not built yet; building before first query.")
            self.build()
        return self._index.search(q, k)

    def search(self, query: Any, k: int) -> list[int]:
        """Return up to *k* handles ordered by descending cosine similarity."""
        return [handle for handle, _ in self.neighbours(query, k)]

    def evaluate(self, query: Any) -> float:
        """Summarise how well *query* matches the space as a whole.

        The neighbourhood is the nearest ``k = max(1, round(0.2 * n))``
        embeddings.  Two metrics are taken over their similarities
        ``s_1 >= s_2 >= ... >= s_k``:

        - a rank-discounted sum ``m1 = sum(s_i / log2(i + 1))``, which
          rewards strong top matches,
        - the plain mean ``m2 = sum(s_i) / k``, which rewards broad
          agreement,

        blended as ``(1 + b²) · m1 · m2 / (b² · m2 + m1)`` with ``b = 1.2``.
        Negative similarities count as 0, as do neighbours not yet indexed.

        Returns:
            A score >= 0; 0.0 for an empty space.
        """
        n = len(self._vectors)
        if n == 0:
            return 0.0
        k = max(1, math.floor(config.EVALUATE_NEIGHBOURHOOD_FRACTION * n + 0.5))
        sims = [max(0.0, s) for _, s in self.neighbours(query, k)]

        metric_1 = sum(s / math.log2(i + 2) for i, s in enumerate(sims))
        metric_2 = sum(sims) / k
        beta_sq = config.EVALUATE_BETA ** 2
        denominator = beta_sq * metric_2 + metric_1
        if denominator == 0.0:
            return 0.0
        return (1 + beta_sq) * metric_1 * metric_2 / denominator

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the stored embeddings."""
        return {
            "dimension": self._dimension,
            "vectors": [vec.tolist() for vec in self._vectors],
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], index_factory: IndexFactory | None = None
    ) -> TextEmbeddingSpace:
        """Rebuild a space from :meth:`to_dict` output; the index is built lazily."""
        space = cls(int(data["dimension"]), index_factory=index_factory)
        for vec in data.get("vectors", []):
            space.insert(vec)
        return space

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _checked(self, embedding: Any) -> np.ndarray:
        try:
            vec = as_embedding(embedding)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        if vec.shape[0] != self._dimension:
            raise ConfigurationError(
                f"Embedding has dimension {vec.shape[0]}, space expects {self._dimension}"
            )
        return vec

    def _matrix(self) -> np.ndarray:
        if not self._vectors:
            return np.empty((0, self._dimension), dtype=np.float32)
        return np.vstack(self._vectors)
