"""
Custom Exception Hierarchy for the Tenant Broker

This module provides the structured errors raised by the broker, plus the
helpers that translate failures coming out of the OpenStack client library
into that hierarchy.
"""

from typing import Any, Dict, Optional

from openstack import exceptions as os_exceptions

NUMERIC_PASSWORD_MESSAGE = "Numeric-only passwords are not accepted"


class TenantBrokerError(Exception):
    """
    Base exception class for all Tenant Broker related errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# API-related exceptions
class ApiRequestError(TenantBrokerError):
    """Raised when a request against the cloud API cannot be completed."""

    def __init__(
        self, message: str, service: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if service:
            context["service"] = service
        kwargs["context"] = context
        kwargs.setdefault("error_code", "API_REQUEST_FAILED")
        super().__init__(message, **kwargs)


class CredentialRejectedError(ApiRequestError):
    """Raised when a password is refused before any request is sent."""

    def __init__(self, message: str = NUMERIC_PASSWORD_MESSAGE, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CREDENTIAL_REJECTED")
        kwargs.setdefault(
            "recovery_suggestion", "Use a password containing non-digit characters"
        )
        super().__init__(message, **kwargs)

    def __str__(self) -> str:
        # Callers match on the bare validator message.
        return self.message


# Configuration-related exceptions
class ConfigurationError(TenantBrokerError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(
        self, message: str, config_section: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if config_section:
            context["config_section"] = config_section
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check configuration file and environment variables"
        )
        super().__init__(message, **kwargs)


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration is missing."""

    def __init__(
        self, message: str, missing_keys: Optional[list[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if missing_keys:
            context["missing_keys"] = missing_keys
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MISSING_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion",
            f"Set required configuration: {', '.join(missing_keys)}"
            if missing_keys
            else "Set required configuration",
        )
        super().__init__(message, **kwargs)


# Utility functions for exception handling
def wrap_api_exception(
    exc: Exception,
    service: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ApiRequestError:
    """
    Wrap an exception raised by the OpenStack client library.

    Args:
        exc: The original exception
        service: Service type the request was aimed at
        context: Optional context information

    Returns:
        ApiRequestError: Wrapped exception carrying the underlying message
    """
    if isinstance(exc, ApiRequestError):
        return exc
    return ApiRequestError(str(exc), service=service, context=context, cause=exc)


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "http_status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_not_found(exc: BaseException) -> bool:
    """
    Check whether an exception signals a missing or invisible resource.

    Classification is done on the HTTP status the client library attaches to
    its errors, so any exception exposing a 404 qualifies, together with the
    library's own not-found types.
    """
    if isinstance(exc, os_exceptions.NotFoundException):
        return True
    return _status_code(exc) == 404
