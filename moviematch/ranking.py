"""Ranking: orders a batch of candidate movies by profile similarity."""

from __future__ import annotations

import logging
from typing import Iterable

from moviematch.errors import ConsistencyError
from moviematch.models import MovieVector
from moviematch.profile import UserProfile

logger = logging.getLogger(__name__)


def rank(
    profile: UserProfile,
    candidates: Iterable[MovieVector],
    descending: bool = False,
) -> list[MovieVector]:
    """Return *candidates* sorted by their similarity to *profile*.

    **The default order is ascending**: the weakest match comes first and
    the best match last.  Pass ``descending=True``, or use
    :func:`best_first`, to get the best match first.  Equal scores keep
    their input order in both directions.

    Every candidate's score is memoised on *profile* as a side effect, so a
    movie appearing twice in the batch is only scored once.  The profile
    lock is held for the whole pass; an interaction cannot invalidate the
    cache halfway through.

    Args:
        profile: The user to rank for.
        candidates: Movies to order.  Not modified.
        descending: Put the best match first.

    Returns:
        A new list holding the same movies in score order.

    Raises:
        ConsistencyError: If a candidate has no memoised score after scoring.
    """
    batch = list(candidates)
    with profile.lock:
        for movie in batch:
            profile.similarity(movie)
        scores = []
        for movie in batch:
            score = profile.cached_score(movie.movie_id)
            if score is None:
                raise ConsistencyError(
                    f"Movie {movie.movie_id} has no cached score after scoring"
                )
            scores.append(score)

    order = sorted(range(len(batch)), key=scores.__getitem__, reverse=descending)
    logger.debug("Ranked %d candidates for profile %r.", len(batch), profile.profile_id)
    return [batch[i] for i in order]


def best_first(profile: UserProfile, candidates: Iterable[MovieVector]) -> list[MovieVector]:
    """Shorthand for ``rank(profile, candidates, descending=True)``."""
    return rank(profile, candidates, descending=True)
