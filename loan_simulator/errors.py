"""Error taxonomy for the loan simulator."""

from typing import Any, Dict, Optional


class LoanSimulatorError(Exception):
    """Base exception for all loan simulator errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class ValidationError(LoanSimulatorError):
    """Raised when input is malformed or out of range."""
    pass


class NotFoundError(LoanSimulatorError):
    """Raised when a referenced user or loan does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} not found",
            {"entity_type": entity_type, "entity_id": entity_id}
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConflictError(LoanSimulatorError):
    """Raised when an operation conflicts with the current state."""
    pass


class AuthenticationError(LoanSimulatorError):
    """Raised when credentials or tokens are rejected."""
    pass
