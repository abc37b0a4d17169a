"""Error taxonomy and centralized error handling for the retrieval fusion core."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import traceback

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    INTERNAL = "internal"
    EXTERNAL_SERVICE = "external_service"


@dataclass
class ErrorContext:
    """Context information for errors."""
    component: str
    operation: str
    source_id: Optional[str] = None
    query: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorResponse:
    """Standardized error response model."""
    error_code: str
    message: str
    severity: ErrorSeverity
    category: ErrorCategory
    context: ErrorContext
    timestamp: datetime = field(default_factory=datetime.now)
    suggestions: List[str] = field(default_factory=list)
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
            "suggestions": self.suggestions,
            "context": {
                "component": self.context.component,
                "operation": self.context.operation,
                "source_id": self.context.source_id,
                "query": self.context.query,
                "timestamp": self.context.timestamp.isoformat(),
                "additional_data": self.context.additional_data
            },
            "details": self.details
        }


class FusionSearchError(Exception):
    """Base exception for retrieval fusion errors."""

    def __init__(self, message: str, error_response: Optional[ErrorResponse] = None):
        super().__init__(message)
        self.error_response = error_response
        self.message = message


class InvalidRequestError(FusionSearchError):
    """Raised when a search request is malformed. Rejected before any retrieval call."""
    pass


class RequestFailedError(FusionSearchError):
    """Raised when no usable candidates can be produced or record storage is unreachable."""
    pass


class RecordNotFoundError(FusionSearchError):
    """Raised when a single record lookup finds nothing."""
    pass


class AdapterUnavailableError(FusionSearchError):
    """A retrieval collaborator failed or timed out.

    Absorbed by the pipeline unless the adapter is configured as required.
    """
    pass


class ErrorHandler:
    """Centralized error handler for standardized error processing."""

    def __init__(self):
        """Initialize error handler."""
        self.error_counts: Dict[str, int] = {}

    def handle_error(self, error: Exception, context: ErrorContext) -> ErrorResponse:
        """Handle and classify an error.

        Args:
            error: Exception that occurred
            context: Error context information

        Returns:
            Standardized error response
        """
        error_code, category, severity = self._classify_error(error)

        error_response = ErrorResponse(
            error_code=error_code,
            message=str(error),
            severity=severity,
            category=category,
            context=context,
            suggestions=self._generate_suggestions(category),
            details=self._extract_error_details(error)
        )

        self._track_error(error_code, context)
        self._log_error(error_response, error)

        return error_response

    def _classify_error(self, error: Exception) -> tuple[str, ErrorCategory, ErrorSeverity]:
        """Classify error and determine code, category, and severity.

        Args:
            error: Exception to classify

        Returns:
            Tuple of (error_code, category, severity)
        """
        error_type = type(error).__name__

        if "Connection" in error_type or "Network" in error_type:
            return f"NETWORK_{error_type.upper()}", ErrorCategory.NETWORK, ErrorSeverity.HIGH

        if "Timeout" in error_type or "timeout" in str(error).lower():
            return f"TIMEOUT_{error_type.upper()}", ErrorCategory.TIMEOUT, ErrorSeverity.MEDIUM

        if isinstance(error, (InvalidRequestError, ValueError)) or "Validation" in error_type:
            return f"VALIDATION_{error_type.upper()}", ErrorCategory.VALIDATION, ErrorSeverity.LOW

        if "Config" in error_type:
            return f"CONFIG_{error_type.upper()}", ErrorCategory.CONFIGURATION, ErrorSeverity.MEDIUM

        if isinstance(error, RequestFailedError):
            return f"REQUEST_{error_type.upper()}", ErrorCategory.STORAGE, ErrorSeverity.HIGH

        if isinstance(error, AdapterUnavailableError):
            return f"ADAPTER_{error_type.upper()}", ErrorCategory.EXTERNAL_SERVICE, ErrorSeverity.MEDIUM

        return f"INTERNAL_{error_type.upper()}", ErrorCategory.INTERNAL, ErrorSeverity.MEDIUM

    def _generate_suggestions(self, category: ErrorCategory) -> List[str]:
        """Generate helpful suggestions based on error category."""
        if category == ErrorCategory.NETWORK:
            return [
                "Check network connectivity",
                "Verify retrieval service endpoints are accessible"
            ]
        if category == ErrorCategory.TIMEOUT:
            return [
                "Increase search.timeout",
                "Reduce search.candidate_pool_depth"
            ]
        if category == ErrorCategory.VALIDATION:
            return ["Check request parameters (page, page_size, sort, mode)"]
        if category == ErrorCategory.CONFIGURATION:
            return ["Review configuration files and FUSION_* environment variables"]
        if category == ErrorCategory.STORAGE:
            return ["Check record storage availability"]
        return []

    def _extract_error_details(self, error: Exception) -> Dict[str, Any]:
        """Extract detailed information from error.

        Args:
            error: Exception to extract details from

        Returns:
            Dictionary containing error details
        """
        details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc()
        }

        if error.__cause__ is not None:
            details["cause"] = repr(error.__cause__)

        return details

    def _track_error(self, error_code: str, context: ErrorContext) -> None:
        """Track error occurrence for monitoring."""
        tracking_key = f"{context.component}:{error_code}"
        self.error_counts[tracking_key] = self.error_counts.get(tracking_key, 0) + 1

    def _log_error(self, error_response: ErrorResponse, original_error: Exception) -> None:
        """Log error with appropriate level based on severity."""
        log_message = (
            f"Error in {error_response.context.component}.{error_response.context.operation}: "
            f"{error_response.message}"
        )
        if error_response.context.source_id:
            log_message += f" (source={error_response.context.source_id})"

        if error_response.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message, exc_info=original_error)
        elif error_response.severity == ErrorSeverity.HIGH:
            logger.error(log_message, exc_info=original_error)
        elif error_response.severity == ErrorSeverity.MEDIUM:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring.

        Returns:
            Dictionary containing error statistics
        """
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts_by_type": dict(self.error_counts)
        }

    def reset_statistics(self) -> None:
        """Reset error statistics."""
        self.error_counts.clear()
        logger.info("Error statistics reset")


# Global error handler instance
error_handler = ErrorHandler()


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance.

    Returns:
        Global ErrorHandler instance
    """
    return error_handler
