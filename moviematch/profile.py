"""User profile: preference weight accumulation, scoring and cache invalidation."""

from __future__ import annotations

import heapq
import json
import logging
import math
import threading
import uuid
from typing import Any, Hashable, Iterable, TypeVar

from moviematch import config
from moviematch.errors import ConsistencyError, PersistenceError
from moviematch.models import Genre, Language, MovieVector
from moviematch.similarity import (
    ACTORS_WEIGHT,
    GENRES_WEIGHT,
    LANGUAGE_WEIGHT,
    PROFILE_WEIGHT_TOTAL,
    TEXT_WEIGHT,
)
from moviematch.store import ProfileStore
from moviematch.text_space import IndexFactory, TextEmbeddingSpace

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

_FORMAT_VERSION = 1

# Slack for float rounding when checking a match against its normaliser.
_OVERLAP_TOLERANCE = 1e-9


class UserProfile:
    """Accumulated preferences of one user and the scores derived from them.

    The profile keeps three preference maps (actor id, genre, language) and
    a :class:`~moviematch.text_space.TextEmbeddingSpace` of the descriptions
    the user interacted with.  Scores are memoised per movie id and stay
    fixed until the next invalidation, even if small interactions have
    shifted the weights in the meantime.

    **Invalidation**: each interaction measures how much weight it adds
    relative to everything absorbed so far.  With ``P`` the cumulative
    weight before the interaction, ``Q`` the weight queued since the last
    rebuild and ``w`` the new weight::

        relative_change = 1                  if P == 0
                          (Q + w) / P        otherwise

    Above ``config.INVALIDATION_THRESHOLD`` the score cache is cleared, the
    text index rebuilt and the profile saved to its store; below it ``w`` is
    only queued.

    All public methods are serialised by a re-entrant lock; use :attr:`lock`
    to hold it across several calls.

    Args:
        profile_id: Key of the profile in the store.
        dimension: Description embedding length.  Defaults to
            ``config.EMBEDDING_DIMENSION``.
        store: Where to flush the profile on invalidation.  ``None`` keeps
            the profile purely in memory.
        index_factory: Nearest-neighbour backend for the text space.
    """

    def __init__(
        self,
        profile_id: str,
        dimension: int | None = None,
        store: ProfileStore | None = None,
        index_factory: IndexFactory | None = None,
    ) -> None:
        self.profile_id = profile_id
        self._store = store
        self._lock = threading.RLock()
        self._actor_weights: dict[uuid.UUID, float] = {}
        self._genre_weights: dict[Genre, float] = {}
        self._language_weights: dict[Language, float] = {}
        self._text_space = TextEmbeddingSpace(
            dimension if dimension is not None else config.EMBEDDING_DIMENSION,
            index_factory=index_factory,
        )
        self._score_cache: dict[uuid.UUID, float] = {}
        self._profile_weight = 0.0
        self._queued_weight = 0.0

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def actor_weights(self) -> dict[uuid.UUID, float]:
        with self._lock:
            return dict(self._actor_weights)

    @property
    def genre_weights(self) -> dict[Genre, float]:
        with self._lock:
            return dict(self._genre_weights)

    @property
    def language_weights(self) -> dict[Language, float]:
        with self._lock:
            return dict(self._language_weights)

    @property
    def text_space(self) -> TextEmbeddingSpace:
        return self._text_space

    @property
    def profile_weight(self) -> float:
        """Total interaction weight absorbed since the profile was created."""
        return self._profile_weight

    @property
    def queued_weight(self) -> float:
        """Interaction weight absorbed since the last rebuild."""
        return self._queued_weight

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._score_cache)

    def cached_score(self, movie_id: uuid.UUID) -> float | None:
        """Return the memoised score for *movie_id*, or ``None``."""
        with self._lock:
            return self._score_cache.get(movie_id)

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    def insert_interaction(self, movie: MovieVector, weight: float) -> bool:
        """Fold one interaction with *movie* into the preference maps.

        Each actor receives ``weight / n_actors``, each genre
        ``weight / n_genres`` and the language the full *weight*.  The
        description embedding joins the text space but is only searchable
        after the next rebuild.

        Args:
            movie: The movie the user interacted with.
            weight: Strength of the interaction; must be finite and >= 0.

        Returns:
            ``True`` if the interaction triggered an invalidation.

        Raises:
            ValueError: If *weight* is negative or not finite.
            ConfigurationError: If the description has the wrong dimension.
            PersistenceError: If the triggered flush failed.  The interaction
                is still applied in memory.
        """
        if not math.isfinite(weight) or weight < 0:
            raise ValueError(f"Interaction weight must be finite and >= 0, got {weight!r}")

        with self._lock:
            self._text_space.insert(movie.description)
            _distribute(self._actor_weights, movie.actor_ids, weight)
            _distribute(self._genre_weights, movie.genres, weight)
            _distribute(self._language_weights, [movie.language], weight)

            relative_change = self._relative_change(weight)
            self._profile_weight += weight

            if abs(relative_change) > config.INVALIDATION_THRESHOLD:
                logger.debug(
                    "Profile %r drifted by %.3f after %r; invalidating.",
                    self.profile_id,
                    relative_change,
                    movie.title,
                )
                self._invalidate()
                return True

            self._queued_weight += weight
            logger.debug(
                "Profile %r drifted by %.3f after %r; queued weight now %.3f.",
                self.profile_id,
                relative_change,
                movie.title,
                self._queued_weight,
            )
            return False

    def invalidate(self) -> None:
        """Force an invalidation: clear scores, rebuild the index, flush."""
        with self._lock:
            self._invalidate()

    def save(self) -> None:
        """Flush the profile to its store without touching the cache.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        with self._lock:
            self._flush()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def similarity(self, movie: MovieVector) -> float:
        """Return how well *movie* matches the profile, in [0, 1].

        A memoised score is returned unchanged until the next invalidation;
        otherwise the score is computed and memoised.

        Sub-scores, combined with the weights of
        :mod:`moviematch.similarity`:

        ========  =====================================================
        Actors    profile weight of the movie's actors over the sum of
                  the top-k profile actor weights
        Genres    same pattern over genres
        Language  profile weight of the movie's language over the total
                  language weight
        Text      :meth:`TextEmbeddingSpace.evaluate` capped at 1
        ========  =====================================================

        Raises:
            ConsistencyError: If a preference map holds weights that make
                a sub-score exceed 1.
        """
        with self._lock:
            cached = self._score_cache.get(movie.movie_id)
            if cached is not None:
                return cached
            score = self._compute_similarity(movie)
            self._score_cache[movie.movie_id] = score
            return score

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready snapshot.  The score cache is not included."""
        with self._lock:
            return {
                "version": _FORMAT_VERSION,
                "profile_id": self.profile_id,
                "actor_weights": {str(k): v for k, v in self._actor_weights.items()},
                "genre_weights": {k.value: v for k, v in self._genre_weights.items()},
                "language_weights": {k.value: v for k, v in self._language_weights.items()},
                "text_space": self._text_space.to_dict(),
                "profile_weight": self._profile_weight,
                "queued_weight": self._queued_weight,
            }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        store: ProfileStore | None = None,
        index_factory: IndexFactory | None = None,
    ) -> UserProfile:
        """Rebuild a profile from :meth:`to_dict` output with an empty cache.

        Raises:
            ValueError: If the snapshot has an unknown format version.
        """
        version = data.get("version")
        if version != _FORMAT_VERSION:
            raise ValueError(f"Unsupported profile format version {version!r}")
        space = TextEmbeddingSpace.from_dict(data["text_space"], index_factory=index_factory)
        profile = cls(
            data["profile_id"],
            dimension=space.dimension,
            store=store,
            index_factory=index_factory,
        )
        profile._text_space = space
        profile._actor_weights = {
            uuid.UUID(k): float(v) for k, v in data["actor_weights"].items()
        }
        profile._genre_weights = {Genre(k): float(v) for k, v in data["genre_weights"].items()}
        profile._language_weights = {
            Language(k): float(v) for k, v in data["language_weights"].items()
        }
        profile._profile_weight = float(data["profile_weight"])
        profile._queued_weight = float(data["queued_weight"])
        return profile

    @classmethod
    def from_json(
        cls,
        payload: str,
        store: ProfileStore | None = None,
        index_factory: IndexFactory | None = None,
    ) -> UserProfile:
        """Parse a stored payload.

        Raises:
            PersistenceError: If the payload is not a valid profile snapshot.
        """
        try:
            return cls.from_dict(json.loads(payload), store=store, index_factory=index_factory)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise PersistenceError(f"Corrupt profile payload: {exc}") from exc

    @classmethod
    def load(
        cls,
        store: ProfileStore,
        profile_id: str,
        dimension: int | None = None,
        index_factory: IndexFactory | None = None,
    ) -> UserProfile:
        """Load *profile_id* from *store*, or start an empty profile.

        The returned profile flushes back to *store* on invalidation.

        Raises:
            PersistenceError: If the store fails or holds a corrupt payload.
        """
        try:
            payload = store.load(profile_id)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to load profile {profile_id!r}: {exc}") from exc

        if payload is None:
            logger.info("No stored profile %r; starting empty.", profile_id)
            return cls(profile_id, dimension=dimension, store=store, index_factory=index_factory)

        profile = cls.from_json(payload, store=store, index_factory=index_factory)
        logger.info(
            "Loaded profile %r (%d embeddings, weight %.2f).",
            profile_id,
            len(profile.text_space),
            profile.profile_weight,
        )
        return profile

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _relative_change(self, weight: float) -> float:
        if self._profile_weight == 0.0:
            return 1.0
        return (self._queued_weight + weight) / self._profile_weight

    def _invalidate(self) -> None:
        self._queued_weight = 0.0
        self._score_cache.clear()
        self._text_space.build()
        self._flush()

    def _flush(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self.profile_id, self.to_json())
        except PersistenceError:
            logger.error("Failed to persist profile %r.", self.profile_id)
            raise
        except Exception as exc:
            logger.error("Failed to persist profile %r: %s", self.profile_id, exc)
            raise PersistenceError(f"Failed to save profile {self.profile_id!r}: {exc}") from exc
        logger.info("Persisted profile %r.", self.profile_id)

    def _compute_similarity(self, movie: MovieVector) -> float:
        actor_score = _overlap(movie.actor_ids, self._actor_weights)
        genre_score = _overlap(list(dict.fromkeys(movie.genres)), self._genre_weights)
        language_score = _share(movie.language, self._language_weights)
        text_score = min(1.0, self._text_space.evaluate(movie.description))

        return (
            actor_score * ACTORS_WEIGHT
            + genre_score * GENRES_WEIGHT
            + language_score * LANGUAGE_WEIGHT
            + text_score * TEXT_WEIGHT
        ) / PROFILE_WEIGHT_TOTAL


def _distribute(weights: dict[K, float], keys: Iterable[K], weight: float) -> None:
    """Spread *weight* evenly over the distinct *keys*, adding to *weights*.

    An empty *keys* is a no-op.
    """
    distinct = list(dict.fromkeys(keys))
    if not distinct:
        return
    share = weight / len(distinct)
    for key in distinct:
        weights[key] = weights.get(key, 0.0) + share


def _overlap(keys: list[K], weights: dict[K, float]) -> float:
    """Weight of *keys* in *weights* relative to the best achievable total.

    The normaliser is the sum of the ``k`` largest weights, with
    ``k = max(len(keys), len(weights))``.
    """
    if not keys or not weights:
        return 0.0
    k = max(len(keys), len(weights))
    normaliser = sum(heapq.nlargest(k, weights.values()))
    matched = sum(weights.get(key, 0.0) for key in keys)
    if matched > normaliser * (1 + _OVERLAP_TOLERANCE) or matched < 0:
        raise ConsistencyError(
            f"Matched weight {matched} is outside [0, {normaliser}]; "
            "preference map is inconsistent"
        )
    if normaliser == 0.0:
        return 0.0
    return min(1.0, matched / normaliser)


def _share(key: K, weights: dict[K, float]) -> float:
    total = sum(weights.values())
    if total <= 0.0:
        return 0.0
    return weights.get(key, 0.0) / total
