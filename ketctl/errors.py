"""Exceptions raised while managing an installation plan."""
from typing import Iterable, List


class PlanError(Exception):
    """Base class for all plan management errors."""
    pass


class ParseError(PlanError):
    """Raised when a plan document is not valid YAML or does not map to a plan."""
    pass


class PlanWriteError(PlanError):
    """Raised when a plan could not be marshalled or written."""
    pass


class MissingPlanError(PlanError):
    """Raised when the plan file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Plan file not found at {path!r}. If you don't have a plan file, "
            "you may generate one with 'ketctl install plan'"
        )


class ConflictingArgumentsError(PlanError):
    """Raised when a cluster name is combined with explicit path flags."""
    pass


class DuplicateNodeError(PlanError):
    """Raised when a candidate node collides with a node already in the plan."""

    FIELD_NAMES = {
        "host": "host name",
        "ip": "IP",
        "internalip": "internal IP",
    }

    def __init__(self, field: str, pool: str):
        self.field = field
        self.pool = pool
        super().__init__(
            f"according to the plan file, the {self.FIELD_NAMES.get(field, field)} "
            f"of the new node is already being used by another {pool} node"
        )


class ValidationError(PlanError):
    """Aggregate of validation findings, reported together."""

    def __init__(self, message: str, errors: Iterable[str] = ()):
        self.message = message
        self.errors: List[str] = list(errors)
        super().__init__(message)

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        details = "\n".join(f"  - {e}" for e in self.errors)
        return f"{self.message}:\n{details}"


class ExecutionError(PlanError):
    """Raised when an external engine (ansible-playbook, terraform) fails."""
    pass
