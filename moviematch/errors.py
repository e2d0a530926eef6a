"""Exception hierarchy for the scoring engine."""


class MovieMatchError(Exception):
    """Base class for every error raised by :mod:`moviematch`."""


class ConfigurationError(MovieMatchError, ValueError):
    """Invalid construction parameters, e.g. a non-positive embedding dimension
    or an embedding whose length does not match its space."""


class ConsistencyError(MovieMatchError, RuntimeError):
    """An internal invariant no longer holds.

    Scores computed past this point would be silently wrong, so callers
    should not try to recover from it.
    """


class PersistenceError(MovieMatchError):
    """The profile store could not load or save a profile.

    The in-memory profile is still valid when this is raised from a flush;
    the caller may retry or warn the user about unsaved state.
    """
