"""Shared pytest fixtures for all moviematch tests."""

from __future__ import annotations

import pytest

from helpers import ACTOR_1, ACTOR_2, ACTOR_3, DIM, make_movie
from moviematch.index.exact import ExactIndex
from moviematch.models import Genre, Language, MovieVector
from moviematch.profile import UserProfile
from moviematch.store import InMemoryProfileStore

# ---------------------------------------------------------------------------
# Movie fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def movie_drama() -> MovieVector:
    return make_movie("Quiet Harbour", actors=(ACTOR_1,), genres=(Genre.DRAMA,))


@pytest.fixture
def movie_comedy() -> MovieVector:
    return make_movie(
        "Loud Neighbours",
        actors=(ACTOR_2, ACTOR_3),
        genres=(Genre.COMEDY, Genre.ROMANCE),
        language=Language.FRENCH,
        description=(0.0, 1.0, 0.0, 0.0),
    )


@pytest.fixture
def movie_crime() -> MovieVector:
    return make_movie(
        "Night Ledger",
        actors=(ACTOR_3,),
        genres=(Genre.CRIME, Genre.THRILLER),
        description=(0.0, 0.0, 1.0, 0.0),
    )


# ---------------------------------------------------------------------------
# Profile fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def new_profile(store) -> UserProfile:
    """A brand-new profile over 4-dimensional descriptions, exact index."""
    return UserProfile("u_new", dimension=DIM, store=store, index_factory=ExactIndex)


@pytest.fixture
def drama_profile(store, movie_drama) -> UserProfile:
    """A profile whose only interaction is a strong one with a drama."""
    profile = UserProfile("u_drama", dimension=DIM, store=store, index_factory=ExactIndex)
    profile.insert_interaction(movie_drama, 10.0)
    return profile
