"""Domain exceptions shared by the stores, the orchestrator and the API.

The API layer maps each family to one HTTP status (see main.py); messages
are free text and are shown to users verbatim.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all domain errors."""


# ------------------------------------------------------------------ #
# Lookups
# ------------------------------------------------------------------ #


class NotFoundError(PipelineError):
    """A referenced row does not exist."""


class ProjectNotFoundError(NotFoundError):
    pass


class ArtifactNotFoundError(NotFoundError):
    pass


class JobNotFoundError(NotFoundError):
    pass


class ApprovalNotFoundError(NotFoundError):
    pass


# ------------------------------------------------------------------ #
# State conflicts
# ------------------------------------------------------------------ #


class PreconditionError(PipelineError):
    """A stage cannot start with what the project currently holds."""


class MissingInputArtifactError(PreconditionError):
    """The artifact type a stage consumes has not been produced yet."""


class InvalidJobTransitionError(PipelineError):
    """The requested status change is not in the job state machine."""


class JobAlreadyTerminalError(InvalidJobTransitionError):
    """The job already reached done, needs_approval or failed."""

    def __init__(self, message: str, *, status: str):
        super().__init__(message)
        self.status = status


class ApprovalAlreadyDecidedError(PipelineError):
    pass


# ------------------------------------------------------------------ #
# Artifacts
# ------------------------------------------------------------------ #


class InvalidArtifactError(PipelineError):
    """Payload does not match the artifact's format or registered shape."""


class ImmutableArtifactError(PipelineError):
    """Artifacts are write-once; regenerate instead of updating."""
