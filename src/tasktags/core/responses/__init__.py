"""Standard response envelopes for engine operations."""

from tasktags.core.responses.builders import error_response, success_response
from tasktags.core.responses.types import (
    HTTP_STATUS_BY_TYPE,
    ErrorCode,
    ErrorType,
    OperationResponse,
)

__all__ = [
    "HTTP_STATUS_BY_TYPE",
    "ErrorCode",
    "ErrorType",
    "OperationResponse",
    "error_response",
    "success_response",
]
