import logging
import time
from typing import Callable, Optional, Protocol

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_exponential,
)

from app.core.exceptions import AIOverloadedError, LLMOverloadedError

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    def generate_content(self, prompt: str, timeout: float | None = None) -> str:
        ...


class _StopAtDeadline:
    """Stop when the next backoff sleep would end past the deadline."""

    def __init__(self, deadline: float, wait: Callable[[RetryCallState], float], clock: Callable[[], float]):
        self.deadline = deadline
        self.wait = wait
        self.clock = clock

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.clock() + self.wait(retry_state) >= self.deadline


class RetryingLLMClient:
    """
    Runs one LLM completion with exponential backoff on transient overload.

    Only ``LLMOverloadedError`` is retried. Anything else the generator raises
    propagates on the first attempt. When the attempts (or the deadline) run
    out, ``AIOverloadedError`` is raised so the API can answer 503.
    """

    def __init__(
        self,
        generator: TextGenerator,
        retries: int = 5,
        initial_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.generator = generator
        self.retries = retries
        self.initial_delay = initial_delay
        self.sleep = sleep
        self.clock = clock

    def generate(
        self,
        prompt: str,
        retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """
        Args:
            prompt: Full prompt text.
            retries: Total number of attempts (defaults to the client setting).
            initial_delay: Seconds to wait after the first overload; doubled each time.
            deadline: Absolute ``clock()`` value after which no new attempt starts.

        Returns:
            The raw response text.
        """
        attempts = retries if retries is not None else self.retries
        delay = initial_delay if initial_delay is not None else self.initial_delay

        wait = wait_exponential(multiplier=delay, exp_base=2, min=delay)
        stop = stop_after_attempt(attempts)
        if deadline is not None:
            stop = stop_any(stop, _StopAtDeadline(deadline, wait, self.clock))

        retrying = Retrying(
            retry=retry_if_exception_type(LLMOverloadedError),
            stop=stop,
            wait=wait,
            sleep=self.sleep,
            before_sleep=self._log_retry,
        )

        try:
            for attempt in retrying:
                with attempt:
                    if deadline is not None and self.clock() >= deadline:
                        raise AIOverloadedError("The AI service did not respond in time. Please try again shortly.")
                    return self.generator.generate_content(prompt, timeout=self._remaining(deadline))
        except RetryError as exc:
            number = exc.last_attempt.attempt_number
            logger.error("AI model remains overloaded after %d attempt(s)", number)
            raise AIOverloadedError(details={"attempts": number}) from exc.last_attempt.exception()

        # Retrying always yields at least one attempt
        raise AIOverloadedError()

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - self.clock(), 0.0)

    @staticmethod
    def _log_retry(retry_state: RetryCallState):
        logger.warning(
            "AI model overloaded (503). Retrying in %.1fs... (attempt %d)",
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
            retry_state.attempt_number,
        )
