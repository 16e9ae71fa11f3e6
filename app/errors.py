"""
Failure taxonomy for the quiz content service.

Most of these never reach a caller: storage and playback failures are
absorbed by their fallbacks, and catalog network failures are absorbed by
the sample data. Purchase verification and purchase recording surface
their failures, and so does opening a pack nobody owns.
"""


class QuizServiceError(Exception):
    """Base class for all service failures."""


class NetworkFailure(QuizServiceError):
    """Catalog fetch or verification request failed."""


class VerificationFailure(NetworkFailure):
    """Purchase could not be verified; ownership must not be granted."""


class NotFoundFailure(QuizServiceError):
    """No catalog entry matches the requested slug."""


class NotOwnedFailure(QuizServiceError):
    """The pack exists but is neither free nor purchased."""


class StorageFailure(QuizServiceError):
    """A storage backend could not read or write a key."""


class PlaybackFailure(QuizServiceError):
    """An audio file could not be played."""
