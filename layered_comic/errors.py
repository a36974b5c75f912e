"""
Layered Comic — Error taxonomy.

Generation failures are returned to the caller as values (GenerationResult
carrying an ApiError) so a UI can show a message without a crash boundary.
ParseError is the one exception in the core; it is raised by
comic.deserialize() and caught at the persistence boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    SERVICE_BUSY = "service_busy"
    REQUEST_TIMEOUT = "request_timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    GENERATION_FAILED = "generation_failed"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class ApiError:
    """Structured failure, ready to show to a user."""
    kind: ErrorKind
    title: str
    detail: str
    status: Optional[int] = None

    def __str__(self) -> str:
        status = f" ({self.status})" if self.status is not None else ""
        return f"{self.title}{status}: {self.detail}"


@dataclass(frozen=True)
class GenerationResult:
    """Either data (success) or error (failure), never both."""
    data: Any = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "GenerationResult":
        return cls(data=data)

    @classmethod
    def failure(cls, error: ApiError) -> "GenerationResult":
        return cls(error=error)


class ParseError(ValueError):
    """Persisted comic state could not be turned into a well-formed Comic."""

    kind = ErrorKind.PARSE_ERROR


# ============================================================
# Canned errors
# ============================================================

def missing_credential() -> ApiError:
    return ApiError(
        ErrorKind.MISSING_CREDENTIAL,
        "Missing API Token",
        "Please set your Hugging Face API token in the settings or .env file.",
        401,
    )


def invalid_credential() -> ApiError:
    return ApiError(
        ErrorKind.INVALID_CREDENTIAL,
        "Invalid API Token",
        "The provided Hugging Face API token is invalid. Please check your settings.",
        401,
    )


def service_busy() -> ApiError:
    return ApiError(
        ErrorKind.SERVICE_BUSY,
        "Service Busy",
        "The generation service is currently busy. Please try again in a few moments.",
        503,
    )


def request_timeout() -> ApiError:
    return ApiError(
        ErrorKind.REQUEST_TIMEOUT,
        "Request Timeout",
        "The request timed out. The service might be experiencing high load.",
        408,
    )


def service_unavailable(attempts: int) -> ApiError:
    return ApiError(
        ErrorKind.SERVICE_UNAVAILABLE,
        "Service Unavailable",
        f"The model ran out of resources on {attempts} attempts. Please try again later.",
        503,
    )


def generation_failed(detail: str, status: Optional[int] = None) -> ApiError:
    return ApiError(ErrorKind.GENERATION_FAILED, "Generation Failed", detail, status)
