"""Retry policy for transient database connection failures."""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field
from sqlalchemy.exc import DBAPIError, OperationalError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from ..errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class BackoffStrategy(str, Enum):
    """Retry backoff strategies."""

    EXPONENTIAL = "exponential"
    CONSTANT = "constant"


class RetryConfig(BaseModel):
    """Retry configuration for storage connection failures."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    initial_delay: float = Field(default=0.5, ge=0)  # seconds
    max_delay: float = Field(default=10, ge=0)  # seconds


def build_retry_decorator(retry_config: RetryConfig):
    """Build retry decorator based on retry configuration.

    Only OperationalError (lost connection, server gone away) is retried;
    integrity errors are answers, not failures.
    """
    if retry_config.backoff == BackoffStrategy.EXPONENTIAL:
        wait_strategy = wait_exponential(
            multiplier=retry_config.initial_delay,
            max=retry_config.max_delay,
        )
    else:  # CONSTANT
        wait_strategy = wait_fixed(retry_config.initial_delay)

    return retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait_strategy,
        reraise=True,
    )


def is_connection_failure(error: DBAPIError) -> bool:
    """Whether a driver error means the database itself is unreachable."""
    return isinstance(error, OperationalError) or error.connection_invalidated


def call_storage(
    retry_decorator,
    operation: Callable[..., Any],
    *args: Any,
    target: str,
    entity_type: Optional[str] = None,
) -> Any:
    """Run a storage operation, retrying transient connection failures.

    Connection failures that outlast the retries become
    StorageUnavailableError. Every other driver error (integrity, data)
    is re-raised unchanged for the caller to classify.
    """
    try:
        return retry_decorator(operation)(*args)
    except DBAPIError as e:
        if not is_connection_failure(e):
            raise
        logger.error(f"Storage unavailable while accessing {target}: {e}")
        raise StorageUnavailableError(
            f"Storage unavailable for {target}: {e}",
            entity_type=entity_type,
        ) from e
