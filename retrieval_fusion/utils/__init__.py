# Utilities package

from .error_handling import (
    AdapterUnavailableError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    ErrorResponse,
    ErrorSeverity,
    FusionSearchError,
    InvalidRequestError,
    RecordNotFoundError,
    RequestFailedError,
    get_error_handler,
)
from .graceful_degradation import DegradationConfig, GracefulDegradationManager, SourceOutcome
from .logging import LoggerMixin, get_logger, setup_logging

__all__ = [
    "AdapterUnavailableError",
    "DegradationConfig",
    "ErrorCategory",
    "ErrorContext",
    "ErrorHandler",
    "ErrorResponse",
    "ErrorSeverity",
    "FusionSearchError",
    "GracefulDegradationManager",
    "InvalidRequestError",
    "LoggerMixin",
    "RecordNotFoundError",
    "RequestFailedError",
    "SourceOutcome",
    "get_error_handler",
    "get_logger",
    "setup_logging",
]
