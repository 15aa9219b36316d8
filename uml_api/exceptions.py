"""Domain-specific exceptions for the UML API.

Every error that crosses the HTTP boundary carries an ``error_type`` tag and a
status code, and renders as ``{"type": ..., "message": ...}``.
"""

from typing import Any


class UMLAPIError(Exception):
    """Base exception for all UML API errors."""

    status_code: int = 500
    error_type: str = "ServerError"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        """Initialize the exception, optionally overriding the class defaults."""
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the JSON error body."""
        return {"type": self.error_type, "message": self.message}


class ConfigurationError(UMLAPIError):
    """Error related to missing or invalid configuration."""


# Request validation


class MissingInputError(UMLAPIError):
    """A required request field is absent or empty."""

    status_code = 400
    error_type = "MissingInput"


class InvalidInputError(UMLAPIError):
    """A request field has the wrong type or an unsupported value."""

    status_code = 400
    error_type = "InvalidInput"


# UML text processing


class MissingEndumlError(UMLAPIError):
    """PlantUML source has no line that is exactly ``@enduml``."""

    status_code = 400
    error_type = "MissingEnduml"

    def __init__(self, message: str = "@enduml must be present to indicate end of program.") -> None:
        super().__init__(message)


class MissingSourceCodeError(UMLAPIError):
    """An assistant reply contained no complete ``@startuml ... @enduml`` block."""

    status_code = 500
    error_type = "MissingSourceCode"

    def __init__(self, message: str = "Missing or incomplete source code message generated.") -> None:
        super().__init__(message)


# Render service


class RenderServiceError(UMLAPIError):
    """Base for failures talking to the PlantUML render service."""


class RenderTimeoutError(RenderServiceError):
    """The render service did not answer within the configured timeout."""

    status_code = 408
    error_type = "TimeoutError"


class InvalidUMLCodeError(RenderServiceError):
    """The render service rejected the UML source with HTTP 400."""

    status_code = 400
    error_type = "InvalidUMLCodeError"

    def __init__(self, message: str = "The provided UML code is not valid.") -> None:
        super().__init__(message)


class RenderUnavailableError(RenderServiceError):
    """Any other render service failure."""

    status_code = 500
    error_type = "ServerError"

    def __init__(self, message: str = "The PlantUML server is unavailable.") -> None:
        super().__init__(message)


# Assistant gateway


class AssistantRunError(UMLAPIError):
    """Normalized failure of an assistant call.

    ``error_type`` is the run-status-derived kind (``failed``, ``timeout``, ...) or
    ``ServerError`` for anything the gateway does not recognise.
    """

    @property
    def http_status(self) -> int:
        return self.status_code

    @property
    def kind(self) -> str:
        return self.error_type


# Diagram store


class DiagramStoreError(UMLAPIError):
    """Error related to diagram store operations."""

    status_code = 503
    error_type = "StoreError"


class TransactionConflictError(DiagramStoreError):
    """A store transaction lost a write race and may be retried."""


class UserExistsError(DiagramStoreError):
    """A user document already exists for the uid."""

    status_code = 400


class UserNotFoundError(DiagramStoreError):
    """No user document exists for the uid."""

    status_code = 400


class DiagramNotFoundError(DiagramStoreError):
    """No UML document exists for the id."""

    status_code = 404
