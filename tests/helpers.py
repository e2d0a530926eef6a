"""Builders shared by the test modules."""

from __future__ import annotations

import uuid

from moviematch.models import Actor, Genre, Language, MovieVector

DIM = 4

ACTOR_1 = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
ACTOR_2 = uuid.UUID("00000000-0000-0000-0000-0000000000a2")
ACTOR_3 = uuid.UUID("00000000-0000-0000-0000-0000000000a3")


def make_movie(
    title: str = "Untitled",
    actors: tuple[uuid.UUID, ...] = (ACTOR_1,),
    genres: tuple[Genre, ...] = (Genre.DRAMA,),
    language: Language = Language.ENGLISH,
    description=(1.0, 0.0, 0.0, 0.0),
    movie_id: uuid.UUID | None = None,
    **kwargs,
) -> MovieVector:
    """Build a :class:`MovieVector` with sensible defaults for tests."""
    return MovieVector(
        movie_id=movie_id or uuid.uuid5(uuid.NAMESPACE_URL, f"movie:{title}"),
        title=title,
        actors=tuple(Actor(a, popularity=1.0) for a in actors),
        genres=genres,
        language=language,
        description=description,
        **kwargs,
    )
