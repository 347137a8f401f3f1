# storefront/utils/retry.py
import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.domain.errors import TransactionConflictError
from storefront.utils.settings import (
    DECREMENT_BACKOFF_MAX,
    DECREMENT_BACKOFF_MIN,
    DECREMENT_MAX_ATTEMPTS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def conflict_retrying(
    attempts: int = DECREMENT_MAX_ATTEMPTS,
    min_wait: float = DECREMENT_BACKOFF_MIN,
    max_wait: float = DECREMENT_BACKOFF_MAX,
) -> AsyncRetrying:
    """
    Retry transakcji przy konflikcie zapisu (WATCH/EXEC).
    Tylko TransactionConflictError jest powtarzany, po wyczerpaniu prob
    ostatni blad leci dalej (reraise).
    """
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(TransactionConflictError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
