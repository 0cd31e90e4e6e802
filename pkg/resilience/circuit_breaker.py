"""
Circuit Breaker implementation.

Fails fast on calls to an upstream that keeps failing, and lets a limited
number of probe calls through once the recovery timeout has elapsed.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pkg.logger.logger import get_logger


logger = get_logger(__name__)


T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # calls pass through
    OPEN = "open"  # calls are rejected
    HALF_OPEN = "half_open"  # probing the upstream


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        """
        Initialize circuit breaker error.

        Args:
            name: Name of the circuit that rejected the call.
            message: Optional error message.
        """
        self.name = name
        self.message = message or f"Circuit breaker '{name}' is open"
        super().__init__(self.message)


class CircuitBreaker:
    """
    Async circuit breaker.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit.
        recovery_timeout: Seconds the circuit stays open before probing.
        half_open_max_calls: Probe calls allowed while half-open.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 1,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the circuit breaker.

        Args:
            failure_threshold: Number of failures to open circuit.
            recovery_timeout: Seconds before attempting recovery.
            half_open_max_calls: Max probe calls in half-open state.
            name: Circuit breaker name for logging.
            clock: Monotonic time source.
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.name = name
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Consecutive failures since the last success."""
        return self._failure_count

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run an async callable through the breaker.

        Args:
            func: Async function to execute.
            *args: Positional arguments for func.
            **kwargs: Keyword arguments for func.

        Returns:
            Whatever func returns.

        Raises:
            CircuitBreakerError: If the circuit rejects the call.
        """
        async with self._lock:
            self._maybe_half_open()

            if self._state == CircuitState.OPEN:
                logger.warning("Circuit breaker is open, rejecting call", circuit=self.name)
                raise CircuitBreakerError(self.name)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitBreakerError(
                        self.name,
                        f"Circuit breaker '{self.name}' is half-open, max calls reached",
                    )
                self._half_open_calls += 1

        try:
            result = await func(*args, **kwargs)
        except Exception:
            await self._on_failure()
            raise
        await self._on_success()
        return result

    def _maybe_half_open(self) -> None:
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return
        elapsed = self._clock() - self._opened_at
        if elapsed >= self.recovery_timeout:
            logger.info(
                "Circuit breaker transitioning to half-open",
                circuit=self.name,
                elapsed=round(elapsed, 3),
            )
            self._state = CircuitState.HALF_OPEN
            self._half_open_calls = 0

    async def _on_success(self) -> None:
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.info("Circuit breaker closing after successful probe", circuit=self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._half_open_calls = 0
            self._opened_at = None

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1

            if self._state == CircuitState.HALF_OPEN:
                logger.warning("Circuit breaker reopening after failed probe", circuit=self.name)
                self._open()
            elif self._failure_count >= self.failure_threshold:
                logger.warning(
                    "Circuit breaker opening after threshold exceeded",
                    circuit=self.name,
                    failures=self._failure_count,
                    threshold=self.failure_threshold,
                )
                self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._half_open_calls = 0

    def reset(self) -> None:
        """Force the breaker back to the closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._half_open_calls = 0
        logger.info("Circuit breaker reset", circuit=self.name)
