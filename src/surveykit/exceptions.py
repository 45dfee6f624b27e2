"""SurveyKit exception hierarchy.

All SurveyKit-specific exceptions inherit from SurveyKitError.
"""


class SurveyKitError(Exception):
    """Base exception for all SurveyKit errors."""


class ResourceNotFoundError(SurveyKitError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, resource: str, resource_id: str | None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        if resource_id:
            super().__init__(f"{resource} with ID {resource_id} not found")
        else:
            super().__init__(f"{resource} not found")


class InvalidInputError(SurveyKitError):
    """Raised when input fails validation.

    Covers malformed segment filters, conflicting trigger specifications,
    and schema validation failures of request bodies.
    """


class DatabaseError(SurveyKitError):
    """Raised when the store fails. Carries the original driver message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Database error: {message}")


class ConfigurationError(SurveyKitError):
    """Raised when stored configuration holds an unrecognized value.

    Fatal: never swallowed by the eligibility pipeline.
    """
