#
# retry_support.py: bounded retry policy for detection service requests
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements generic retry policy object and retry loop.
#

import threading, time
import requests
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar
from . import logger_get
from .environment import MAX_RETRIES, RETRY_DELAY_S
from .exceptions import TransientTransportError

T = TypeVar("T")


def is_transient_error(error: BaseException) -> bool:
    """
    Default retry predicate: network failures and HTTP 5xx responses are transient.

    Args:
        error: exception raised by request attempt

    Returns:
        True if request may succeed when repeated.
    """
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(error, requests.HTTPError):
        response = error.response
        return response is not None and response.status_code >= 500
    return False


@dataclass
class RetryPolicy:
    """
    Bounded retry policy.

    Attributes:
        max_retries: number of additional attempts after the first one
        delay_s: fixed delay between attempts, seconds
        retry_predicate: callable deciding if the error of an attempt is worth retrying
    """

    max_retries: int = MAX_RETRIES
    delay_s: float = RETRY_DELAY_S
    retry_predicate: Callable[[BaseException], bool] = field(
        default=is_transient_error
    )

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.delay_s < 0:
            raise ValueError("delay_s must be non-negative")


def with_retry(
    fn: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    *,
    description: str = "request",
    abort_event: Optional[threading.Event] = None,
) -> T:
    """
    Call `fn` until it succeeds, retrying errors accepted by the policy.

    Attempts are strictly sequential. Errors rejected by the policy predicate are
    propagated immediately.

    Args:
        fn: callable performing one attempt
        policy: retry policy; default policy if None
        description: operation description for log messages
        abort_event: when set, waiting for the next attempt is abandoned

    Returns:
        Result of the first successful attempt.

    Raises:
        TransientTransportError: when all attempts failed with retryable errors
            or retries were abandoned via `abort_event`
    """
    if policy is None:
        policy = RetryPolicy()

    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except Exception as e:
            if not policy.retry_predicate(e):
                raise
            if attempt > policy.max_retries:
                raise TransientTransportError(
                    f"{description} failed after {attempt} attempts: {e}", e, attempt
                ) from e

            logger_get().warning(
                f"{description} failed: {e}; retrying ({attempt}/{policy.max_retries})..."
            )
            if abort_event is not None:
                if abort_event.wait(policy.delay_s):
                    raise TransientTransportError(
                        f"{description} abandoned after {attempt} attempts: {e}",
                        e,
                        attempt,
                    ) from e
            else:
                time.sleep(policy.delay_s)
