"""
Custom Exception Classes for the Kult Background Job Processor
===============================================================

This module provides a hierarchy of custom exceptions that preserve context
through the error chain. All exceptions support:

1. Error chaining with `raise ... from e`
2. HTTP status code mapping for trigger endpoint responses
3. Error classification for monitoring/alerting
4. Original context preservation
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories for error classification and monitoring."""
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    JOB_QUEUE = "job_queue"
    JOB_EXECUTION = "job_execution"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


# =============================================================================
# Base Exception
# =============================================================================

class KultError(Exception):
    """
    Base exception class for all job processor errors.

    Provides:
    - HTTP status code for trigger endpoint responses
    - Error category for monitoring
    - Context dictionary for debugging
    - Proper error chaining support

    Usage:
        try:
            client.rpc("process_next_background_job").execute()
        except APIError as e:
            raise JobClaimError(original_error=e) from e
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.category = category
        self.context = context or {}
        self.original_error = original_error

        # Build full message with context
        full_message = message
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            full_message = f"{message} [{context_str}]"

        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error": self.message,
            "category": self.category.value,
            "status_code": self.status_code,
        }
        if self.context:
            result["context"] = self.context
        if self.original_error:
            result["original_error"] = str(self.original_error)
        return result


# =============================================================================
# Authentication Errors
# =============================================================================

class AuthenticationError(KultError):
    """Raised when the trigger caller cannot be authenticated (401)."""

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            category=ErrorCategory.AUTHENTICATION,
            context=context,
            original_error=original_error,
        )


# =============================================================================
# Database Errors
# =============================================================================

class DatabaseError(KultError):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        table: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        if table:
            ctx["table"] = table

        super().__init__(
            message=message,
            status_code=500,
            category=ErrorCategory.DATABASE,
            context=ctx,
            original_error=original_error,
        )


class JobClaimError(DatabaseError):
    """Raised when the claim procedure fails at the store level."""

    def __init__(
        self,
        message: str = "Failed to fetch job",
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            operation="rpc:process_next_background_job",
            table="background_jobs",
            original_error=original_error,
        )
        self.category = ErrorCategory.JOB_QUEUE


class JobCompletionError(DatabaseError):
    """Raised when a job's terminal outcome could not be persisted."""

    def __init__(
        self,
        job_id: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=f"Failed to record completion for job {job_id}",
            operation="rpc:complete_background_job",
            table="background_jobs",
            context={"job_id": job_id},
            original_error=original_error,
        )
        self.category = ErrorCategory.JOB_QUEUE


# =============================================================================
# Job Execution Errors
# =============================================================================

class JobExecutionError(KultError):
    """Raised when a claimed job cannot be executed."""

    def __init__(
        self,
        message: str = "Job execution failed",
        job_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        ctx = context or {}
        if job_type:
            ctx["job_type"] = job_type

        super().__init__(
            message=message,
            status_code=500,
            category=ErrorCategory.JOB_EXECUTION,
            context=ctx,
            original_error=original_error,
        )


class UnknownJobTypeError(JobExecutionError):
    """Raised when a claimed job carries a type with no registered handler."""

    def __init__(
        self,
        job_type: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=f"Unknown job type: {job_type}",
            job_type=job_type,
            original_error=original_error,
        )
        self.status_code = 400


# =============================================================================
# External Service Errors
# =============================================================================

class ExternalServiceError(KultError):
    """Raised when an external service call fails."""

    def __init__(
        self,
        service: str,
        message: str = "External service call failed",
        http_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        if http_status:
            ctx["http_status"] = http_status

        super().__init__(
            message=f"{service}: {message}",
            status_code=502,  # Bad Gateway
            category=ErrorCategory.EXTERNAL_SERVICE,
            context=ctx,
            original_error=original_error,
        )


class EmbeddingAPIError(ExternalServiceError):
    """Raised when the embedding backend rejects a request."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        http_status: Optional[int] = None,
        model: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        ctx = context or {}
        if model:
            ctx["model"] = model

        super().__init__(
            service="OpenAI",
            message=message,
            http_status=http_status,
            context=ctx,
            original_error=original_error,
        )


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(KultError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str = "Server misconfigured",
        config_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        ctx = context or {}
        if config_key:
            ctx["config_key"] = config_key

        super().__init__(
            message=message,
            status_code=500,
            category=ErrorCategory.CONFIGURATION,
            context=ctx,
            original_error=original_error,
        )


class MissingCredentialsError(ConfigurationError):
    """Raised when required credentials are missing."""

    def __init__(
        self,
        service: str,
        required_keys: Optional[list] = None,
        original_error: Optional[Exception] = None,
    ):
        context = {"service": service}
        if required_keys:
            context["required_keys"] = required_keys

        super().__init__(
            message=f"Missing credentials for {service}",
            context=context,
            original_error=original_error,
        )


# =============================================================================
# Result Classes for Operations
# =============================================================================

class OperationResult:
    """
    Structured result for operations that can fail.

    Use this instead of returning None/False when an operation fails,
    to preserve error context.

    Usage:
        result = await store.complete_job(job_id, success=True, error=None)
        if not result.success:
            logger.error("Completion lost: %s", result.error.message)
    """

    def __init__(
        self,
        success: bool,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[KultError] = None,
    ):
        self.success = success
        self.data = data or {}
        self.error = error

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None) -> "OperationResult":
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: KultError) -> "OperationResult":
        """Create a failed result."""
        return cls(success=False, error=error)
