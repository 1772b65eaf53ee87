"""Retry wrapper for summarization gateways."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from syncsearch.core.config import settings
from syncsearch.core.exceptions import GenerationError, RateLimitedError
from syncsearch.core.logging import logger
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.schemas.data_editor import EditPlan
from syncsearch.schemas.synced_item import FetchedContent

T = TypeVar("T")

RetryAfterHook = Callable[[BaseException], Optional[float]]


def retry_after_from_error(error: BaseException) -> Optional[float]:
    """Default hook: the hint carried by a RateLimitedError."""
    if isinstance(error, RateLimitedError):
        return error.retry_after
    return None


def is_retryable(error: BaseException) -> bool:
    """Rate limits and transient generation failures are retried."""
    if isinstance(error, RateLimitedError):
        return True
    return isinstance(error, GenerationError) and error.retryable


class wait_retry_after(wait_base):
    """Wait for the server-supplied hint when there is one, else fall back."""

    def __init__(self, fallback: wait_base, retry_after: RetryAfterHook, max_wait: float = 60.0):
        """Create the wait strategy.

        Args:
            fallback: Strategy used when the failure carries no hint
            retry_after: Hook extracting a hint (seconds) from the failure
            max_wait: Upper bound applied to hints
        """
        self.fallback = fallback
        self.retry_after = retry_after
        self.max_wait = max_wait

    def __call__(self, retry_state: RetryCallState) -> float:
        """Compute the delay before the next attempt."""
        error = retry_state.outcome.exception() if retry_state.outcome else None
        hint = self.retry_after(error) if error is not None else None
        if hint is not None:
            return min(max(float(hint), 0.0), self.max_wait)
        return self.fallback(retry_state)


class RetryingSummarizer(BaseSummarizer):
    """Wraps a summarizer with bounded retries, exponential backoff and jitter."""

    def __init__(
        self,
        inner: BaseSummarizer,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_jitter: Optional[float] = None,
        retry_after: RetryAfterHook = retry_after_from_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Create the wrapper; unset knobs come from settings."""
        self.inner = inner
        self.max_attempts = max_attempts or settings.SUMMARIZER_MAX_ATTEMPTS
        self.base_delay = settings.SUMMARIZER_BASE_DELAY if base_delay is None else base_delay
        self.max_jitter = settings.SUMMARIZER_MAX_JITTER if max_jitter is None else max_jitter
        self.retry_after = retry_after
        self._sleep = sleep

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Summarization attempt {retry_state.attempt_number}/{self.max_attempts} failed "
            f"({type(error).__name__}: {error}), retrying in {delay:.1f}s"
        )

    async def _call(self, fn: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        backoff = wait_exponential(multiplier=self.base_delay, exp_base=2, max=60)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_retry_after(backoff + wait_random(0, self.max_jitter), self.retry_after),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn(*args, **kwargs)

    async def summarize(
        self,
        content: FetchedContent,
        content_type: Optional[str] = None,
        name: Optional[str] = None,
        image: Optional[FetchedContent] = None,
    ) -> str:
        """Summarize with retries."""
        return await self._call(self.inner.summarize, content, content_type, name, image)

    async def answer(
        self, question: str, context: str, image: Optional[FetchedContent] = None
    ) -> str:
        """Answer with retries."""
        return await self._call(self.inner.answer, question, context, image)

    async def generate_edit_plan(
        self,
        csv_text: str,
        instruction: str,
        image: Optional[FetchedContent] = None,
        image_file_name: Optional[str] = None,
    ) -> EditPlan:
        """Generate an edit plan with retries."""
        return await self._call(
            self.inner.generate_edit_plan, csv_text, instruction, image, image_file_name
        )
