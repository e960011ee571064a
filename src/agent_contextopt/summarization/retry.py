"""Retry with exponential backoff, returning a Result instead of raising."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential


@dataclass(frozen=True)
class Result:
    """Either a value or the error that prevented it."""
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def retry_with_backoff(
    fn: Callable[[], Any],
    max_attempts: int = 2,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Optional[Callable[[int, BaseException], None]] = None,
) -> Result:
    """
    Call fn until it succeeds or max_attempts is reached.

    Waits base_delay * 2**(attempt - 1) seconds between attempts
    (1s, 2s, ... with the defaults). Exceptions outside retry_on
    propagate unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def after(retry_state):
        if on_failure:
            on_failure(retry_state.attempt_number, retry_state.outcome.exception())

    retryer = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay),
        retry=retry_if_exception_type(retry_on),
        sleep=sleep,
        after=after,
        reraise=True,
    )
    try:
        value = retryer(fn)
    except retry_on as e:
        return Result(error=e, attempts=retryer.statistics.get("attempt_number", max_attempts))
    return Result(value=value, attempts=retryer.statistics.get("attempt_number", 1))
