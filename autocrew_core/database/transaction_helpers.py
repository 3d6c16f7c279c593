"""
Transaction helpers for multi-statement units of work.

with_transaction runs a unit of work against a session, commits it, rolls back
on error and retries PostgreSQL serialization failures (SQLSTATE 40001).
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.config import shared_settings
from autocrew_core.utils.logging_config import log_with_context
from autocrew_core.utils.retry_utils import RetryConfig, retry_with_exponential_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")

SERIALIZATION_FAILURE = "40001"


@dataclass
class TransactionResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[BaseException] = None
    retries: int = 0


def is_serialization_failure(error: BaseException) -> bool:
    """True when the error (or the DBAPI error it wraps) carries SQLSTATE 40001."""
    candidates = [error, getattr(error, "orig", None), error.__cause__]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "sqlstate", None)
        if code == SERIALIZATION_FAILURE:
            return True
    return False


async def with_transaction(
    session: AsyncSession,
    fn: Callable[[AsyncSession], Awaitable[T]],
    operation: str,
    context: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
    retry_delay: Optional[float] = None,
) -> TransactionResult[T]:
    """
    Run fn(session) and commit, retrying on serialization failures.

    Args:
        session: Session the unit of work runs on
        fn: Async callable performing the statements; its return value becomes result.data
        operation: Operation name attached to log records
        context: Extra structured log context
        max_retries: Retries after the first attempt (defaults to TRANSACTION_MAX_RETRIES)
        retry_delay: Initial backoff delay in seconds (defaults to TRANSACTION_RETRY_DELAY)

    Returns:
        TransactionResult; errors are reported in it, not raised
    """
    attempts = 0
    config = RetryConfig(
        max_retries=shared_settings.TRANSACTION_MAX_RETRIES if max_retries is None else max_retries,
        initial_delay=shared_settings.TRANSACTION_RETRY_DELAY if retry_delay is None else retry_delay,
        max_delay=5.0,
    )
    log_context = {"operation": operation, **(context or {})}

    async def attempt() -> T:
        nonlocal attempts
        attempts += 1
        try:
            data = await fn(session)
            await session.commit()
            return data
        except Exception:
            await session.rollback()
            raise

    try:
        data = await retry_with_exponential_backoff(
            attempt,
            config=config,
            should_retry=is_serialization_failure,
        )
    except Exception as e:
        log_with_context(
            logger, "error",
            f"Transaction failed: {operation}: {e}",
            context={**log_context, "attempts": attempts},
        )
        return TransactionResult(success=False, error=e, retries=attempts - 1)

    if attempts > 1:
        log_with_context(
            logger, "info",
            f"Transaction succeeded after {attempts - 1} retries: {operation}",
            context=log_context,
        )
    return TransactionResult(success=True, data=data, retries=attempts - 1)


async def execute_batch(
    session: AsyncSession,
    operations: list,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> TransactionResult[list]:
    """Run several async callables in one transaction, collecting their results in order."""

    async def run_all(tx: AsyncSession) -> list:
        results = []
        for op in operations:
            results.append(await op(tx))
        return results

    return await with_transaction(session, run_all, operation, context)
