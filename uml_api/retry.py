"""Retry logic for diagram store transactions using tenacity."""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import DiagramStoreError, TransactionConflictError

F = TypeVar("F", bound=Callable[..., Any])


def with_transaction_retry(
    operation: str,
    max_attempts: int = 5,
    wait_min: float = 0.05,
    wait_max: float = 1.0,
) -> Callable[[F], F]:
    """Decorator re-running a whole store transaction when it loses a write race.

    Args:
        operation: Name of the operation for log and error messages
        max_attempts: Maximum number of attempts
        wait_min: Shortest backoff between attempts, in seconds
        wait_max: Longest backoff between attempts, in seconds

    Returns:
        Decorated coroutine function. Conflicts still present after the last
        attempt are re-raised; other non-store errors become DiagramStoreError.

    """

    def decorator(func: F) -> F:
        @retry(
            retry=retry_if_exception_type(TransactionConflictError),
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=wait_min, min=wait_min, max=wait_max),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"{operation} attempt {retry_state.attempt_number} conflicted: {retry_state.outcome.exception() if retry_state.outcome else 'Unknown error'}",
            ),
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except DiagramStoreError:
                raise
            except Exception as e:
                logger.error(f"{operation} failed: {e}")
                raise DiagramStoreError(f"{operation} failed: {e}") from e

        return wrapper  # type: ignore[return-value,no-any-return]

    return decorator
