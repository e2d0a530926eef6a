"""Core domain value types shared across all moviematch modules."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

import numpy as np


class Genre(str, Enum):
    """Closed set of genre tags a movie can carry."""

    ACTION = "action"
    ADVENTURE = "adventure"
    ANIMATION = "animation"
    COMEDY = "comedy"
    CRIME = "crime"
    DOCUMENTARY = "documentary"
    DRAMA = "drama"
    FAMILY = "family"
    FANTASY = "fantasy"
    HORROR = "horror"
    ROMANCE = "romance"
    SCIENCE_FICTION = "science_fiction"
    THRILLER = "thriller"


class Language(str, Enum):
    """Closed set of original languages, as ISO 639-1 codes."""

    ENGLISH = "en"
    FRENCH = "fr"
    GERMAN = "de"
    ITALIAN = "it"
    JAPANESE = "ja"
    KOREAN = "ko"
    SPANISH = "es"


@dataclass(frozen=True)
class Actor:
    """A cast member as it appears in a movie's credits.

    Attributes:
        actor_id: Stable identifier of the person.
        popularity: Popularity scalar reported by the metadata source.
    """

    actor_id: uuid.UUID
    popularity: float = 0.0


def as_embedding(values: object) -> np.ndarray:
    """Return a read-only float32 copy of *values* as a 1-D embedding.

    Raises:
        ValueError: If *values* is not one-dimensional.
    """
    vec = np.array(values, dtype=np.float32, copy=True)
    if vec.ndim != 1:
        raise ValueError(f"Embedding must be one-dimensional, got shape {vec.shape}")
    vec.setflags(write=False)
    return vec


@dataclass(frozen=True)
class MovieVector:
    """Feature vector of a single candidate movie.

    Instances are immutable; the description embedding is copied into a
    read-only float32 array on construction so later changes to the caller's
    buffer cannot leak into cached scores.

    Attributes:
        movie_id: Unique identifier, used as the score cache key.
        title: Human-readable title (informational only).
        actors: Ordered cast list, billing order first.
        genres: Genre tags of the movie.
        language: Original language.
        description: Dense text embedding of the synopsis.
        popularity: Popularity scalar from the metadata source.
        vote_average: Mean user vote.
        vote_count: Number of votes behind :attr:`vote_average`.
    """

    movie_id: uuid.UUID
    title: str
    actors: tuple[Actor, ...]
    genres: tuple[Genre, ...]
    language: Language
    description: np.ndarray = field(compare=False, repr=False)
    popularity: float = 0.0
    vote_average: float = 0.0
    vote_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "actors", tuple(self.actors))
        object.__setattr__(self, "genres", tuple(Genre(g) for g in self.genres))
        object.__setattr__(self, "language", Language(self.language))
        object.__setattr__(self, "description", as_embedding(self.description))

    @property
    def actor_ids(self) -> list[uuid.UUID]:
        """Distinct actor ids in billing order."""
        return list(dict.fromkeys(actor.actor_id for actor in self.actors))
