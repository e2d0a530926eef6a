"""Tests for moviematch.registry.ProfileRegistry."""

from __future__ import annotations

import json
import threading
from unittest.mock import MagicMock

import pytest

from helpers import DIM, make_movie
from moviematch.errors import PersistenceError
from moviematch.index.exact import ExactIndex
from moviematch.profile import UserProfile
from moviematch.registry import ProfileRegistry
from moviematch.store import InMemoryProfileStore, ProfileStore


def _make_registry(store: ProfileStore | None = None) -> ProfileRegistry:
    return ProfileRegistry(
        store if store is not None else InMemoryProfileStore(),
        dimension=DIM,
        index_factory=ExactIndex,
    )


class TestProfileAccess:
    def test_creates_empty_profile(self) -> None:
        registry = _make_registry()
        profile = registry.get_or_load_profile("u1")
        assert profile.profile_id == "u1"
        assert profile.profile_weight == 0.0

    def test_returns_same_handle(self) -> None:
        registry = _make_registry()
        assert registry.get_or_load_profile("u1") is registry.get_or_load_profile("u1")

    def test_loads_from_store(self) -> None:
        store = InMemoryProfileStore()
        seeded = UserProfile("u1", dimension=DIM, store=store, index_factory=ExactIndex)
        seeded.insert_interaction(make_movie(), 3.0)

        profile = _make_registry(store).get_or_load_profile("u1")
        assert profile.profile_weight == pytest.approx(3.0)

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            _make_registry().get_or_load_profile("")

    def test_get_all_profiles(self) -> None:
        registry = _make_registry()
        registry.get_or_load_profile("u1")
        registry.get_or_load_profile("u2")
        assert {p.profile_id for p in registry.get_all_profiles()} == {"u1", "u2"}

    def test_concurrent_access_yields_one_profile(self) -> None:
        registry = _make_registry()
        seen: list[UserProfile] = []

        def worker() -> None:
            seen.append(registry.get_or_load_profile("shared"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(p) for p in seen}) == 1


class TestHostOperations:
    def test_record_interaction_and_rank(self) -> None:
        registry = _make_registry()
        liked = make_movie("Liked")
        other = make_movie("Other", actors=(), genres=(), description=(0.0, 1.0, 0.0, 0.0))
        assert registry.record_interaction("u1", liked, 5.0) is True
        assert registry.similarity("u1", liked) == pytest.approx(1.0)
        assert registry.rank("u1", [liked, other]) == [other, liked]
        assert registry.rank("u1", [other, liked], descending=True) == [liked, other]

    def test_record_interaction_flushes_to_store(self) -> None:
        store = InMemoryProfileStore()
        registry = _make_registry(store)
        registry.record_interaction("u1", make_movie(), 2.0)
        assert json.loads(store.load("u1"))["profile_weight"] == pytest.approx(2.0)


class TestFlushAll:
    def test_saves_queued_weight(self) -> None:
        store = InMemoryProfileStore()
        registry = _make_registry(store)
        registry.record_interaction("u1", make_movie("A"), 10.0)
        registry.record_interaction("u1", make_movie("B"), 0.1)
        assert registry.flush_all() == 0
        assert json.loads(store.load("u1"))["queued_weight"] == pytest.approx(0.1)

    def test_failures_are_counted_not_raised(self) -> None:
        store = MagicMock(spec=ProfileStore)
        store.load.return_value = None
        store.save.side_effect = PersistenceError("down")
        registry = _make_registry(store)
        registry.get_or_load_profile("u1")
        registry.get_or_load_profile("u2")
        assert registry.flush_all() == 2
