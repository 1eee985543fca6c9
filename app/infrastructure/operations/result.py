"""OperationResult: the value every internal API call and dispatch returns.

Callers branch on ``is_success`` / ``is_retryable`` instead of catching
transport exceptions. The dispatcher and the webhook notifier log
``retryable`` alongside any failed result they receive.
"""

from dataclasses import dataclass
from typing import Any, Optional

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Outcome of one operation.

    Attributes:
        status: Outcome category
        message: Human-readable summary for logs
        data: Decoded response body or dispatch details, when there is one
        error_code: Machine-readable code (``NOT_FOUND``, ``RATE_LIMITED``, ...)
        retry_after: Seconds the remote side asked us to wait
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        """True if the same call may succeed later."""
        return self.status == OperationStatus.TRANSIENT_ERROR

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """Build a failed result with an explicit status."""
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Failure worth another attempt: connection loss, timeout, 5xx, 429,
        or a chat delivery that has attempts left."""
        return cls.error(
            OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after
        )

    @classmethod
    def permanent_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Failure that repeats on retry: bad records, rejected webhook URLs,
        missing chat ids, other 4xx replies."""
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)

    @classmethod
    def unauthorized(cls, message: str, error_code: str = "UNAUTHORIZED") -> "OperationResult":
        """The internal API refused the client key (401/403)."""
        return cls.error(OperationStatus.UNAUTHORIZED, message, error_code)

    @classmethod
    def not_found(cls, message: str, error_code: str = "NOT_FOUND") -> "OperationResult":
        """The requested generation or cast does not exist."""
        return cls.error(OperationStatus.NOT_FOUND, message, error_code)
