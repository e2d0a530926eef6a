"""Engine configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# Text embedding space
# ---------------------------------------------------------------------------

# Dimension of the description embeddings supplied by the host.
EMBEDDING_DIMENSION: int = int(os.getenv("MOVIEMATCH_EMBEDDING_DIMENSION", "512"))

# Nearest-neighbour backend: "hnsw" (faiss graph index) or "exact" (brute force).
INDEX_BACKEND: str = os.getenv("MOVIEMATCH_INDEX_BACKEND", "hnsw")

# HNSW graph parameters.  EF_SEARCH is raised to k at query time when smaller.
HNSW_M: int = int(os.getenv("MOVIEMATCH_HNSW_M", "32"))
HNSW_EF_CONSTRUCTION: int = int(os.getenv("MOVIEMATCH_HNSW_EF_CONSTRUCTION", "64"))
HNSW_EF_SEARCH: int = int(os.getenv("MOVIEMATCH_HNSW_EF_SEARCH", "64"))

# Relevance evaluation: share of the space used as neighbourhood, and the
# beta of the harmonic blend between the discounted and the mean metric.
EVALUATE_NEIGHBOURHOOD_FRACTION: float = 0.2
EVALUATE_BETA: float = 1.2

# ---------------------------------------------------------------------------
# Profile invalidation
# ---------------------------------------------------------------------------

# Relative weight drift above which the score cache is dropped, the index
# rebuilt and the profile flushed to the store.
INVALIDATION_THRESHOLD: float = float(
    os.getenv("MOVIEMATCH_INVALIDATION_THRESHOLD", "0.05")
)

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

DB_PATH: str = os.getenv("MOVIEMATCH_DB_PATH", "moviematch.db")
