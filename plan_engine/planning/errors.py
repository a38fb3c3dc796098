"""Canonical plan engine error types.

Every failure the engine can raise maps to one of five categories:

- InvariantViolationError: a hard cap or bound would be exceeded. Never
  overridable.
- BlockingConflictError: a business rule is violated and no override policy
  covers it.
- StaleSnapshotError: a commit presented a snapshot token that no longer
  matches its inputs. The caller must preview again.
- MalformedInputError: the request failed schema validation before any
  computation ran.

Warnings are never raised; they travel as ConflictItem entries with
severity "warning".
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plan_engine.planning.schemas.results import ConflictItem


class PlanEngineError(RuntimeError):
    """Base class for plan engine errors.

    Attributes:
        code: Error code (e.g., "CAP_INVARIANT_VIOLATED", "STALE_SNAPSHOT")
        details: List of error detail strings
    """

    def __init__(self, code: str, details: list[str]):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}")


class InvariantViolationError(PlanEngineError):
    """Raised when applied load or fitness ramp would exceed a hard cap."""


class BlockingConflictError(PlanEngineError):
    """Raised at commit when blocking conflicts are not covered by an override.

    Attributes:
        conflicts: The blocking conflicts left unresolved
    """

    def __init__(self, conflicts: "list[ConflictItem]"):
        self.conflicts = conflicts
        super().__init__(
            "BLOCKING_CONFLICTS",
            [f"{conflict.category}:{conflict.code}" for conflict in conflicts],
        )


class StaleSnapshotError(PlanEngineError):
    """Raised when a commit token does not match the recomputed token."""

    def __init__(self, expected: str, presented: str):
        self.expected = expected
        self.presented = presented
        super().__init__(
            "STALE_SNAPSHOT",
            ["Creation preview is stale or invalid. Preview the plan again before committing."],
        )


class MalformedInputError(PlanEngineError):
    """Raised when a request fails validation before computation."""

    def __init__(self, details: list[str]):
        super().__init__("MALFORMED_INPUT", details)
