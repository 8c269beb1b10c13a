"""
Application Exception Hierarchy

Every error raised by the services layer derives from AppError and
carries the HTTP status it maps to. The handlers registered in main.py
render them with the standard response envelope.

    AppError
    ├── ValidationError     422  field -> messages map
    ├── AuthenticationError 401  missing or bad session
    ├── NotFoundError       404
    ├── ConflictError       409
    ├── ConfigurationError  503  provider credential missing
    └── UpstreamError       502  search/AI provider failure
        └── ParseError           AI reply is not a JSON object
"""

from typing import Dict, List, Optional


class AppError(Exception):
    """Base exception for all application errors"""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def errors(self) -> Optional[dict]:
        return None


class ValidationError(AppError):
    """Request data failed a business rule"""

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]], message: str = "Validation failed"):
        self.field_errors = errors
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]})

    @property
    def errors(self) -> Optional[dict]:
        return self.field_errors


class AuthenticationError(AppError):
    """Login failed or the session cookie is missing or invalid"""

    status_code = 401


class NotFoundError(AppError):
    """Requested resource not found"""

    status_code = 404

    def __init__(self, resource_type: str, identifier: str):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found")


class ConflictError(AppError):
    """Operation conflicts with existing data"""

    status_code = 409


class ConfigurationError(AppError):
    """A required provider credential is not configured"""

    status_code = 503


class UpstreamError(AppError):
    """
    An external provider failed.

    The public message stays generic; `detail` holds the provider error
    and is only exposed to clients in debug mode.
    """

    status_code = 502
    public_message = "The upstream service failed. Please try again later."

    def __init__(self, message: str, detail: Optional[str] = None):
        self.detail = detail or message
        super().__init__(message)


class ParseError(UpstreamError):
    """AI provider reply could not be parsed as a JSON object"""
