"""Abstract base class for nearest-neighbour indexes over text embeddings."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class NeighbourIndex(ABC):
    """Cosine-similarity nearest-neighbour index.

    An index is derived state: :class:`~moviematch.text_space.TextEmbeddingSpace`
    owns the embeddings and hands the full matrix to :meth:`build` whenever
    it decides a rebuild is due.  Row ``i`` of that matrix is returned as
    handle ``i`` by :meth:`search`.
    """

    @abstractmethod
    def build(self, vectors: np.ndarray) -> None:
        """Replace the index contents with *vectors*.

        Args:
            vectors: ``(n, dimension)`` float32 matrix; ``n`` may be zero.
                Rebuilding from the same matrix must give the same answers.
        """

    @abstractmethod
    def search(self, query: np.ndarray, k: int) -> list[tuple[int, float]]:
        """Return up to *k* ``(handle, cosine similarity)`` pairs.

        Args:
            query: ``(dimension,)`` float32 vector.
            k: Maximum number of neighbours.

        Returns:
            Pairs ordered by descending similarity; ties keep ascending
            handle order.
        """

    @property
    @abstractmethod
    def built(self) -> bool:
        """Whether :meth:`build` has been called at least once."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of vectors covered by the last build."""


def normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """L2-normalise each row; all-zero rows stay zero."""
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return (vectors / norms).astype(np.float32)
