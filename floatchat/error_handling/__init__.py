"""
Error Handling
==============

Error taxonomy for the FloatChat dispatch engine.

Every error defined here is handled inside the dispatcher and converted into a
normal response; none of them is meant to reach the caller.

Hierarchy:
- FloatChatError
    - InputEmpty
    - CredentialMissing
    - CredentialInvalid
    - UpstreamError
        - RateLimited
        - ServiceUnavailable
        - MalformedUpstreamResponse
        - NetworkFailure
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    RATE_LIMIT = "rate_limit"
    EXTERNAL_SERVICE = "external_service"
    NETWORK = "network"
    UNKNOWN = "unknown"


class FloatChatError(Exception):
    """Base exception for dispatch engine operations."""

    error_code = "UNKNOWN"
    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message)
        self.status_code = status_code
        self.metadata = kwargs


class InputEmpty(FloatChatError):
    """The incoming message was empty or whitespace only."""

    error_code = "INPUT_EMPTY"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW


class CredentialMissing(FloatChatError):
    """No upstream credential is configured."""

    error_code = "CREDENTIAL_MISSING"
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.LOW


class CredentialInvalid(FloatChatError):
    """The upstream credential is malformed or was rejected (401)."""

    error_code = "CREDENTIAL_INVALID"
    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.HIGH


class UpstreamError(FloatChatError):
    """The answer-generation service failed."""

    error_code = "UPSTREAM_ERROR"
    category = ErrorCategory.EXTERNAL_SERVICE


class RateLimited(UpstreamError):
    """Upstream answered 429."""

    error_code = "RATE_LIMIT"
    category = ErrorCategory.RATE_LIMIT

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServiceUnavailable(UpstreamError):
    """Upstream answered 503 (or another 5xx)."""

    error_code = "SERVICE_UNAVAILABLE"
    severity = ErrorSeverity.HIGH


class MalformedUpstreamResponse(UpstreamError):
    """Upstream answered, but not with a usable completion."""

    error_code = "MALFORMED_RESPONSE"


class NetworkFailure(UpstreamError):
    """Upstream could not be reached, or did not answer in time."""

    error_code = "NETWORK_FAILURE"
    category = ErrorCategory.NETWORK


@dataclass
class ErrorInfo:
    """Detailed error information for logging."""
    error_type: str
    error_message: str
    error_code: str
    severity: ErrorSeverity
    category: ErrorCategory
    service_name: str
    error_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status_code: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: Exception, service_name: str,
                       context: Optional[Dict[str, Any]] = None) -> "ErrorInfo":
        """Build error info from any exception."""
        if isinstance(error, FloatChatError):
            error_code = error.error_code
            severity = error.severity
            category = error.category
        else:
            error_code = "UNEXPECTED"
            severity = ErrorSeverity.CRITICAL
            category = ErrorCategory.UNKNOWN

        return cls(
            error_type=type(error).__name__,
            error_message=str(error),
            error_code=error_code,
            severity=severity,
            category=category,
            service_name=service_name,
            status_code=getattr(error, "status_code", None),
            context_data=context or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "error_id": self.error_id,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "service_name": self.service_name,
            "status_code": self.status_code,
            "timestamp": self.timestamp.isoformat(),
            "context_data": self.context_data,
        }


__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorInfo",
    "FloatChatError",
    "InputEmpty",
    "CredentialMissing",
    "CredentialInvalid",
    "UpstreamError",
    "RateLimited",
    "ServiceUnavailable",
    "MalformedUpstreamResponse",
    "NetworkFailure",
]
