"""Error taxonomy for blueprint consolidation."""

from __future__ import annotations


class BlueprintError(RuntimeError):
    """Base class for failures of a single add/remove operation."""


class MatcherContractViolation(BlueprintError):
    """The semantic matcher returned output that breaks the provenance contract."""

    def __init__(self, message: str, *, violations: list[str] | None = None):
        super().__init__(message)
        self.violations = violations or []


class ConcurrencyConflict(BlueprintError):
    """Another mutation committed first; the blueprint version moved under us."""

    def __init__(self, user_id: str, expected_version: int, attempts: int = 1):
        super().__init__(
            f"blueprint for user {user_id} changed concurrently "
            f"(expected version {expected_version}, attempts={attempts})"
        )
        self.user_id = user_id
        self.expected_version = expected_version
        self.attempts = attempts


class CollaboratorUnavailable(BlueprintError):
    """The semantic matcher or the persistence layer could not be reached."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator} unavailable: {message}")
        self.collaborator = collaborator


class SetupIncomplete(BlueprintError):
    """Required schema or infrastructure is missing. Not retryable."""


class OperationCancelled(BlueprintError):
    """The caller cancelled the operation before its write was applied."""
