#!/usr/bin/env python3
"""
Standardized exception hierarchy for content-studio.

Every error carries an HTTP status so the API layer can map it to a JSON
response without knowing where it was raised.
"""

from typing import Optional, Dict, Any, List


class ContentStudioError(Exception):
    """Base exception for all content-studio errors."""

    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }

    def to_response(self) -> Dict[str, Any]:
        """Body returned to API clients."""
        return {'error': self.message}


class InvalidRequestError(ContentStudioError):
    """Client supplied a malformed or contradictory request."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        context = {'field': field} if field else {}
        super().__init__(message, context=context)


class ConfigurationError(ContentStudioError):
    """A required environment variable or setting is missing."""

    status_code = 500

    def __init__(self, config_key: str, issue: str = "is not configured"):
        message = f"{config_key} {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


class UpstreamError(ContentStudioError):
    """An upstream HTTP API failed or returned something unusable."""

    status_code = 502

    def __init__(self, service: str, message: str, status: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        context: Dict[str, Any] = {'service': service}
        if status is not None:
            context['upstream_status'] = status
        if original_error is not None:
            context['original_error'] = str(original_error)
        super().__init__(message, context=context)
        self.service = service
        self.status = status

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        if self.status is not None:
            body['upstreamStatus'] = self.status
        return body


class LLMError(UpstreamError):
    """LLM chat or embedding call failed."""

    def __init__(self, provider: str, model: str, original_error: Exception):
        message = f"LLM error from {provider} ({model}): {original_error}"
        super().__init__(provider, message, original_error=original_error)
        self.context['model'] = model
        self.provider = provider
        self.model = model


class PayloadValidationError(UpstreamError):
    """Upstream payload did not match the expected schema."""

    def __init__(self, service: str, errors: List[str]):
        message = f"Unexpected response from {service}"
        super().__init__(service, message)
        self.context['validation_errors'] = errors
        self.errors = errors


class VerificationError(ContentStudioError):
    """Generated content still failed a required check after its retry."""

    status_code = 500

    def __init__(self, condition: str, message: str, details: Optional[Dict[str, Any]] = None):
        context = {'condition': condition}
        context.update(details or {})
        super().__init__(message, context=context)
        self.condition = condition
        self.details = details or {}

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        body['condition'] = self.condition
        body.update(self.details)
        return body


class StoreError(ContentStudioError):
    """Persistence operation against an external store failed."""

    status_code = 500

    def __init__(self, store: str, operation: str, original_error: Optional[Exception] = None,
                 message: Optional[str] = None):
        message = message or f"{store} {operation} failed"
        context = {
            'store': store,
            'operation': operation,
        }
        if original_error is not None:
            context['original_error'] = str(original_error)
        super().__init__(message, context=context)


def describe_exception(error: Exception) -> str:
    """Short message suitable for a warnings list."""
    if isinstance(error, ContentStudioError):
        return error.message
    return str(error) or error.__class__.__name__
