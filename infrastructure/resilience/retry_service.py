"""
Resilience service for retry logic, circuit breakers, and fault tolerance.
"""

import time
import random
from typing import Callable, Any, Optional
from datetime import datetime, timedelta
from enum import Enum
import threading

from infrastructure.errors import TransportError, NotFoundError
from infrastructure.monitoring.logging_service import get_logger

logger = get_logger(__name__)


def is_retriable_error(error: Exception) -> bool:
    """
    Transient failures: unreachable backend, timeouts, and 5xx responses.
    Client errors (4xx, missing conversations) are permanent.
    """
    if isinstance(error, CircuitBreakerError) or isinstance(error, NotFoundError):
        return False
    if isinstance(error, TransportError):
        return error.status_code is None or error.status_code >= 500
    return False


def exponential_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2 ** attempt)
    delay = min(delay, max_delay)

    # Add jitter to avoid thundering herd effect
    jitter = random.uniform(0, 0.1 * delay)

    return delay + jitter


class CircuitBreakerState(Enum):
    """Circuit breaker states"""
    CLOSED = "closed"      # Normal operation, requests pass through
    OPEN = "open"          # Circuit is open, requests are blocked
    HALF_OPEN = "half_open"  # Testing if service has recovered


class CircuitBreakerError(TransportError):
    """Raised instead of calling the backend while the circuit is open"""
    pass


class CircuitBreaker:
    """
    Circuit breaker for backend API calls

    States:
    - CLOSED: Normal operation, all requests pass through
    - OPEN: Circuit is open, requests fail fast without hitting the backend
    - HALF_OPEN: Testing recovery, limited requests allowed through
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 30,
        is_failure: Callable[[Exception], bool] = is_retriable_error,
        name: str = "CircuitBreaker",
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize circuit breaker

        Args:
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before attempting recovery
            is_failure: Predicate deciding which exceptions count as failures
            name: Name for logging and identification
            clock: Source of the current time
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.is_failure = is_failure
        self.name = name
        self.clock = clock

        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitBreakerState.CLOSED

        self._lock = threading.Lock()

        logger.debug(f"CircuitBreaker '{name}' initialized with threshold={failure_threshold}, timeout={recovery_timeout}s")

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt recovery"""
        if self.last_failure_time is None:
            return False

        return self.clock() - self.last_failure_time >= timedelta(seconds=self.recovery_timeout)

    def _record_success(self):
        with self._lock:
            self.failure_count = 0
            self.success_count += 1

            if self.state == CircuitBreakerState.HALF_OPEN:
                self.state = CircuitBreakerState.CLOSED
                logger.info(f"CircuitBreaker '{self.name}' recovered - state: CLOSED")

    def _record_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = self.clock()

            if self.state == CircuitBreakerState.HALF_OPEN:
                self.state = CircuitBreakerState.OPEN
                logger.warning(f"CircuitBreaker '{self.name}' recovery failed - state: OPEN")

            elif self.state == CircuitBreakerState.CLOSED and self.failure_count >= self.failure_threshold:
                self.state = CircuitBreakerState.OPEN
                logger.warning(f"CircuitBreaker '{self.name}' opened - failures: {self.failure_count}")

    def can_execute(self) -> bool:
        """Check if a request can be executed"""
        with self._lock:
            if self.state == CircuitBreakerState.CLOSED:
                return True

            if self.state == CircuitBreakerState.OPEN:
                if self._should_attempt_reset():
                    self.state = CircuitBreakerState.HALF_OPEN
                    logger.info(f"CircuitBreaker '{self.name}' attempting recovery - state: HALF_OPEN")
                    return True
                return False

            # HALF_OPEN lets one trial request through
            return True

    def remaining_timeout(self) -> float:
        """Seconds until the open circuit allows a trial request"""
        if self.last_failure_time is None or self.state != CircuitBreakerState.OPEN:
            return 0.0
        elapsed = (self.clock() - self.last_failure_time).total_seconds()
        return max(0.0, self.recovery_timeout - elapsed)

    def execute(self, func: Callable) -> Any:
        """
        Execute a function with circuit breaker protection

        Args:
            func: Function to execute

        Returns:
            Function result if successful

        Raises:
            CircuitBreakerError: If circuit is open
            Original exception: If function fails
        """
        if not self.can_execute():
            raise CircuitBreakerError(
                f"Service appears to be down. Retry in {self.remaining_timeout():.0f}s."
            )

        try:
            result = func()
        except Exception as e:
            if self.is_failure(e):
                self._record_failure()
            else:
                # Permanent errors mean the backend answered; it is up
                self._record_success()
            raise

        self._record_success()
        return result

    def get_state(self) -> dict:
        """Get current circuit breaker state for monitoring"""
        remaining = self.remaining_timeout()
        with self._lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "success_count": self.success_count,
                "failure_threshold": self.failure_threshold,
                "remaining_timeout": remaining,
                "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None
            }

    def reset(self):
        """Manually reset the circuit breaker to CLOSED state"""
        with self._lock:
            self.state = CircuitBreakerState.CLOSED
            self.failure_count = 0
            self.last_failure_time = None
            logger.info(f"CircuitBreaker '{self.name}' manually reset - state: CLOSED")


class RetryService:
    """
    Service for handling retry logic and circuit breakers.
    Only idempotent reads should be routed through retry_with_backoff.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self.logger = get_logger(__name__)
        self.sleep = sleep
        self._circuit_breakers: dict[str, CircuitBreaker] = {}

    def create_circuit_breaker(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 30
    ) -> CircuitBreaker:
        """Create and register a new circuit breaker"""
        circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name=name
        )
        self._circuit_breakers[name] = circuit_breaker
        return circuit_breaker

    def get_circuit_breaker(self, name: str) -> Optional[CircuitBreaker]:
        """Get an existing circuit breaker by name"""
        return self._circuit_breakers.get(name)

    def retry_with_backoff(
        self,
        func: Callable,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        on_retry: Optional[Callable[[int, Exception], None]] = None
    ) -> Any:
        """
        Execute a function with retry logic and exponential backoff

        Args:
            func: Function to execute
            max_retries: Maximum number of retry attempts
            base_delay: Base delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            on_retry: Optional callback for retry events (attempt_number, exception)

        Returns:
            Function result if successful

        Raises:
            The last exception if all retries are exhausted
        """
        for attempt in range(max_retries + 1):  # +1 for initial attempt
            try:
                result = func()

                if attempt > 0:
                    self.logger.info(f"Call succeeded after {attempt} retries")

                return result

            except Exception as e:
                if not is_retriable_error(e):
                    raise

                if attempt == max_retries:
                    self.logger.warning(f"Call failed after {max_retries} retries: {e}")
                    raise

                delay = exponential_backoff_delay(attempt, base_delay, max_delay)
                self.logger.warning(f"Attempt {attempt + 1} failed ({e.__class__.__name__}), retrying in {delay:.2f}s")

                if on_retry:
                    on_retry(attempt + 1, e)

                self.sleep(delay)

    def get_backend_circuit_breaker(self) -> CircuitBreaker:
        """Get or create the backend API circuit breaker"""
        if "backend" not in self._circuit_breakers:
            self.create_circuit_breaker(name="backend", failure_threshold=5, recovery_timeout=30)
        return self._circuit_breakers["backend"]


# Global retry service instance
_retry_service: Optional[RetryService] = None


def get_retry_service() -> RetryService:
    """Get the global retry service instance"""
    global _retry_service
    if _retry_service is None:
        _retry_service = RetryService()
    return _retry_service
