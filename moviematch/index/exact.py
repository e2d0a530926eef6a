"""Brute-force cosine index, the correctness baseline for the HNSW backend."""

from __future__ import annotations

import numpy as np

from moviematch.index.base import NeighbourIndex, normalize_rows


class ExactIndex(NeighbourIndex):
    """Scores the query against every stored vector with one matrix product.

    Linear in the number of vectors per query; fine for small profiles and
    for tests.
    """

    def __init__(self) -> None:
        self._matrix: np.ndarray | None = None

    def build(self, vectors: np.ndarray) -> None:
        self._matrix = normalize_rows(np.asarray(vectors, dtype=np.float32))

    def search(self, query: np.ndarray, k: int) -> list[tuple[int, float]]:
        if self._matrix is None or k <= 0 or self._matrix.shape[0] == 0:
            return []
        q = normalize_rows(np.asarray(query, dtype=np.float32).reshape(1, -1))[0]
        sims = self._matrix @ q
        order = np.argsort(-sims, kind="stable")[:k]
        return [(int(i), float(sims[i])) for i in order]

    @property
    def built(self) -> bool:
        return self._matrix is not None

    @property
    def size(self) -> int:
        return 0 if self._matrix is None else int(self._matrix.shape[0])
