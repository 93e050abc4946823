"""
Common exception classes for the structure relay.

Every error raised by the relay pipeline derives from :class:`RelayError` so the
transport layer can map it to a status code and a JSON body in one place.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base exception class for all relay errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            status_code: Optional HTTP status code hint for transport adapters
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code or 500

    def to_dict(self) -> dict[str, Any]:
        error_dict: dict[str, Any] = {
            "message": self.message,
            "type": self.__class__.__name__,
        }
        if self.details:
            error_dict["details"] = self.details
        return {"error": error_dict}


class ValidationError(RelayError):
    """Raised when the inbound request is missing or has malformed fields."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details, status_code=400)


class UnknownBackendError(RelayError):
    """Raised when the requested backend identifier is not configured."""

    def __init__(self, backend_name: str, supported: list[str] | None = None) -> None:
        details: dict[str, Any] = {"backend": backend_name}
        if supported is not None:
            details["supported"] = supported
        super().__init__(
            f"Unsupported backend '{backend_name}'", details, status_code=400
        )
        self.backend_name = backend_name


class ConfigurationError(RelayError):
    """Raised when the server configuration cannot serve the request."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details, status_code=500)


class CredentialMissingError(ConfigurationError):
    """Raised when a backend needs a credential and none is configured."""

    def __init__(self, backend_name: str) -> None:
        super().__init__(
            f"API key for backend '{backend_name}' is not configured on the server. "
            "Contact administrator.",
            {"backend": backend_name},
        )
        self.backend_name = backend_name


class UnavailableError(RelayError):
    """Raised when the upstream backend cannot be reached at all."""

    def __init__(self, backend_name: str, reason: str | None = None) -> None:
        message = f"Could not connect to backend '{backend_name}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"backend": backend_name}, status_code=503)
        self.backend_name = backend_name


class UpstreamError(RelayError):
    """Raised when the upstream backend answers with a failure status.

    The upstream status code is forwarded as-is together with whatever error
    body the backend returned.
    """

    def __init__(
        self,
        backend_name: str,
        status_code: int,
        error_body: Any = None,
    ) -> None:
        super().__init__(
            f"Error from backend '{backend_name}' (status {status_code})",
            {"backend": backend_name, "upstream": error_body},
            status_code=status_code,
        )
        self.backend_name = backend_name
        self.error_body = error_body


class ContentBlockedError(RelayError):
    """Raised when the upstream model explicitly refused to generate content."""

    def __init__(
        self,
        block_reason: str,
        safety_ratings: Any = None,
    ) -> None:
        details: dict[str, Any] = {"blockReason": block_reason}
        if safety_ratings is not None:
            details["safetyRatings"] = safety_ratings
        super().__init__(
            f"Content generation blocked by API: {block_reason}",
            details,
            status_code=400,
        )
        self.block_reason = block_reason
        self.safety_ratings = safety_ratings
