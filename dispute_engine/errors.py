"""Domain errors raised by the dispute services."""


class DisputeError(Exception):
    """Base class for errors surfaced to callers of the dispute services."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFoundError(DisputeError):
    """A referenced dispute, proposal, evidence item or arbitration does not exist."""

    kind = "not_found"


class ForbiddenError(DisputeError):
    """The caller is not a participant allowed to perform the operation."""

    kind = "forbidden"


class InvalidOperationError(DisputeError):
    """A state-machine guard failed."""

    kind = "invalid_operation"


class ConflictError(InvalidOperationError):
    """The order already has a dispute."""

    kind = "conflict"


class ValidationError(DisputeError):
    """Structurally invalid input."""

    kind = "validation_error"
