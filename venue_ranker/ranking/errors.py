from __future__ import annotations


class RankingError(Exception):
    """Base class for failures raised by the ranking pipeline."""

    status_code = 500


class ValidationError(RankingError):
    """Required request fields are missing or unusable. Never reaches a collaborator."""

    status_code = 400


class CollaboratorError(RankingError):
    """The candidate store or the NLU service failed or timed out."""


class MalformedResponseError(CollaboratorError):
    """The NLU service answered with a payload that does not match its schema."""
