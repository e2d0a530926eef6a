"""Per-feature weights and movie-to-movie similarity."""

from __future__ import annotations

import numpy as np

from moviematch.models import MovieVector

# Relative importance of each feature when sub-scores are combined.
POPULARITY_WEIGHT: float = 3.0
VOTE_WEIGHT: float = 3.0
ACTORS_WEIGHT: float = 12.0
GENRES_WEIGHT: float = 9.0
LANGUAGE_WEIGHT: float = 4.0
TEXT_WEIGHT: float = 13.0

TOTAL_WEIGHT: float = (
    POPULARITY_WEIGHT
    + VOTE_WEIGHT
    + ACTORS_WEIGHT
    + GENRES_WEIGHT
    + LANGUAGE_WEIGHT
    + TEXT_WEIGHT
)

# Profile scoring has no popularity/vote evidence, so it uses the other four.
PROFILE_WEIGHT_TOTAL: float = ACTORS_WEIGHT + GENRES_WEIGHT + LANGUAGE_WEIGHT + TEXT_WEIGHT


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Return the cosine of the angle between *a* and *b*; 0.0 for zero vectors."""
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def movie_similarity(a: MovieVector, b: MovieVector) -> float:
    """Score how alike two movies are, in [0, 1].

    Combines every feature with the module weights:

    ===========  ==============================================
    Feature      Sub-score
    ===========  ==============================================
    Popularity   ``1 - |a - b| / max(a, b)``
    Vote         same closeness measure on ``vote_average``
    Actors       Jaccard overlap of actor ids
    Genres       Jaccard overlap of genre tags
    Language     1 if identical, else 0
    Text         cosine of the description embeddings, floored at 0
    ===========  ==============================================
    """
    text_score = 0.0
    if a.description.shape == b.description.shape:
        text_score = max(0.0, cosine_similarity(a.description, b.description))
    total = (
        _closeness(a.popularity, b.popularity) * POPULARITY_WEIGHT
        + _closeness(a.vote_average, b.vote_average) * VOTE_WEIGHT
        + _jaccard(a.actor_ids, b.actor_ids) * ACTORS_WEIGHT
        + _jaccard(a.genres, b.genres) * GENRES_WEIGHT
        + (1.0 if a.language == b.language else 0.0) * LANGUAGE_WEIGHT
        + min(1.0, text_score) * TEXT_WEIGHT
    )
    return total / TOTAL_WEIGHT


def _closeness(x: float, y: float) -> float:
    """Relative closeness of two non-negative scalars, 1.0 when both are zero."""
    top = max(abs(x), abs(y))
    if top == 0.0:
        return 1.0
    return max(0.0, 1.0 - abs(x - y) / top)


def _jaccard(a, b) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)
