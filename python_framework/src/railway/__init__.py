"""
Railway-Oriented Programming (ROP) helpers.

Explicit, composable error handling — stages return Result instead of raising.

    from railway import Result, ErrorCode

    def require_port(port: int) -> Result[int]:
        if not 0 < port < 65536:
            return Result.failure(ErrorCode.VALIDATION_ERROR, f"Invalid port {port}")
        return Result.success(port)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]

__version__ = "1.0.0"
