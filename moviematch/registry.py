"""Profile registry: per-user profile handles, shared store, shutdown flush."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from moviematch.errors import PersistenceError
from moviematch.models import MovieVector
from moviematch.profile import UserProfile
from moviematch.ranking import rank
from moviematch.store import ProfileStore
from moviematch.text_space import IndexFactory

logger = logging.getLogger(__name__)


class ProfileRegistry:
    """Thread-safe map of profile id to :class:`~moviematch.profile.UserProfile`.

    Profiles are loaded from the store on first access and kept in memory
    afterwards.  Each profile serialises its own operations, so work on
    different users proceeds in parallel; the registry lock only guards the
    id-to-profile map.

    The store holds the durable copy.  Profiles flush themselves when an
    interaction invalidates them; call :meth:`flush_all` on shutdown to
    save the weight still queued below the invalidation threshold.

    Args:
        store: Persistence backend shared by every profile.
        dimension: Embedding length for profiles created from scratch.
        index_factory: Nearest-neighbour backend for every profile.
    """

    def __init__(
        self,
        store: ProfileStore,
        dimension: int | None = None,
        index_factory: IndexFactory | None = None,
    ) -> None:
        self._store = store
        self._dimension = dimension
        self._index_factory = index_factory
        self._lock = threading.RLock()
        self._profiles: dict[str, UserProfile] = {}

    # ------------------------------------------------------------------
    # Profile access
    # ------------------------------------------------------------------

    def get_or_load_profile(self, profile_id: str) -> UserProfile:
        """Return the cached profile for *profile_id*, loading it if needed.

        Args:
            profile_id: The user's unique identifier. Must be non-empty.

        Raises:
            ValueError: If *profile_id* is empty.
            PersistenceError: If the store cannot be read.
        """
        if not profile_id:
            raise ValueError("profile_id must be non-empty")
        with self._lock:
            if profile_id not in self._profiles:
                self._profiles[profile_id] = UserProfile.load(
                    self._store,
                    profile_id,
                    dimension=self._dimension,
                    index_factory=self._index_factory,
                )
            return self._profiles[profile_id]

    def get_all_profiles(self) -> list[UserProfile]:
        """Return a snapshot list of all loaded profiles."""
        with self._lock:
            return list(self._profiles.values())

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------

    def record_interaction(self, profile_id: str, movie: MovieVector, weight: float) -> bool:
        """Apply an interaction to *profile_id*'s profile.

        Returns:
            ``True`` if the interaction triggered an invalidation and flush.
        """
        return self.get_or_load_profile(profile_id).insert_interaction(movie, weight)

    def similarity(self, profile_id: str, movie: MovieVector) -> float:
        return self.get_or_load_profile(profile_id).similarity(movie)

    def rank(
        self,
        profile_id: str,
        candidates: Iterable[MovieVector],
        descending: bool = False,
    ) -> list[MovieVector]:
        """Rank *candidates* for *profile_id*; ascending unless *descending*."""
        return rank(self.get_or_load_profile(profile_id), candidates, descending=descending)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def flush_all(self) -> int:
        """Save every loaded profile to the store.

        A failing profile is logged and skipped so the others still get
        saved.

        Returns:
            Number of profiles that could not be saved.
        """
        profiles = self.get_all_profiles()
        failures = 0
        for profile in profiles:
            try:
                profile.save()
            except PersistenceError:
                logger.exception("Failed to flush profile %r.", profile.profile_id)
                failures += 1
        logger.info("Flushed %d profiles (%d failed).", len(profiles) - failures, failures)
        return failures
