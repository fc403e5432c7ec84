"""Base classes and error types for the Firestore data access layer."""

import logging
import os
import random
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, TypeVar

from google.api_core.exceptions import (
    AlreadyExists,
    Conflict,
    DeadlineExceeded,
    FailedPrecondition,
    InternalServerError,
    NotFound,
    PermissionDenied,
    ServiceUnavailable,
    TooManyRequests,
)


logger = logging.getLogger(__name__)

T = TypeVar('T')


class FirestoreError(Exception):
    """Base exception for Firestore operations."""

    def __init__(self, message: str, error_code: str = "FIRESTORE_ERROR", original_error: Optional[Exception] = None):
        """Initialize the Firestore error."""

        super().__init__(message)
        self.error_code = error_code # Error code
        self.original_error = original_error # Original error


class PermissionError(FirestoreError):
    """Permission denied error."""

    def __init__(self, message: str = "Permission denied", original_error: Optional[Exception] = None):
        super().__init__(message, "PERMISSION_DENIED", original_error)


class NotFoundError(FirestoreError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", original_error: Optional[Exception] = None):
        super().__init__(message, "NOT_FOUND", original_error)


class ValidationError(FirestoreError):
    """Data validation error."""

    def __init__(self, message: str = "Validation failed", original_error: Optional[Exception] = None):
        super().__init__(message, "VALIDATION_ERROR", original_error)


class AlreadyExistsError(FirestoreError):
    """Document already exists on a create-if-absent write."""

    def __init__(self, message: str = "Resource already exists", original_error: Optional[Exception] = None):
        super().__init__(message, "ALREADY_EXISTS", original_error)


class ConcurrentModificationError(FirestoreError):
    """Guarded write lost against a concurrent writer (update_time precondition failed)."""

    def __init__(self, message: str = "Document was modified concurrently", original_error: Optional[Exception] = None):
        super().__init__(message, "CONFLICT", original_error)


class TransientStoreError(FirestoreError):
    """Store temporarily unavailable: timeouts, throttling, open breaker."""

    def __init__(self, message: str = "Store temporarily unavailable", original_error: Optional[Exception] = None):
        super().__init__(message, "UNAVAILABLE", original_error)


_TRANSIENT_ERRORS = (ServiceUnavailable, DeadlineExceeded, TooManyRequests, InternalServerError)


class FirestoreClientBoundary(Protocol):
    """Boundary-first protocol for Firestore-like clients used by repositories."""

    def collection(self, name: str) -> Any: ...
    def collections(self) -> Any: ...


@dataclass
class RetryPolicy:
    """Retry/backoff and time budget settings for repository operations."""

    op_timeout_s: float = 2.0   # soft budget per op, retries stop once exceeded
    max_retries: int = 2        # at most 2 retries (3 attempts total)
    backoff_base_s: float = 0.05 # Backoff base
    backoff_factor: float = 2.0 # Backoff factor
    backoff_cap_s: float = 0.5 # Backoff cap

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        """Load the policy from FS_* environment overrides."""

        return cls(
            op_timeout_s=float(os.getenv("FS_OP_TIMEOUT_S", "2.0")),
            max_retries=int(os.getenv("FS_MAX_RETRIES", "2")),
            backoff_base_s=float(os.getenv("FS_BACKOFF_BASE_S", "0.05")),
            backoff_factor=float(os.getenv("FS_BACKOFF_FACTOR", "2.0")),
            backoff_cap_s=float(os.getenv("FS_BACKOFF_CAP_S", "0.5")),
        )


class _CircuitBreaker:
    """Lightweight circuit breaker for Firestore paths (module-local)."""

    def __init__(self, failure_threshold: int = 5, window_s: float = 30.0, reset_timeout_s: float = 15.0) -> None:
        """Initialize the circuit breaker."""

        self._failure_threshold = max(1, failure_threshold) # Failure threshold
        self._window_s = window_s # Window size
        self._reset_timeout_s = reset_timeout_s # Reset timeout
        self._failures = deque()  # type: ignore[var-annotated] # Failures
        self._open_until: float = 0.0 # Open until
        self._lock = threading.RLock() # Lock

    def allow_call(self) -> bool:
        """Return False while the breaker is open."""

        with self._lock:
            now = time.monotonic()

            if now < self._open_until:
                return False

            cutoff = now - self._window_s

            while self._failures and self._failures[0] < cutoff:
                self._failures.popleft()

            return True

    def on_success(self) -> None:
        """On success, reset the circuit breaker."""

        with self._lock:
            self._open_until = 0.0
            self._failures.clear()

    def on_failure(self) -> None:
        """On failure, record it and open the breaker past the threshold."""

        with self._lock:
            now = time.monotonic()

            # Keep the deque ordered
            if self._failures:
                last = self._failures[-1]

                if now < last:
                    now = last

            self._failures.append(now)

            cutoff = now - self._window_s
            while self._failures and self._failures[0] < cutoff:
                self._failures.popleft()

            if len(self._failures) >= self._failure_threshold:
                self._open_until = now + self._reset_timeout_s


class BaseRepository:
    """Shared plumbing for Firestore repositories: retries, breaker, error mapping."""

    def __init__(self, client: FirestoreClientBoundary, *, retry_policy: Optional[RetryPolicy] = None, breaker: Optional[_CircuitBreaker] = None):
        """Initialize repository with a Firestore client."""

        self._client = client # Firestore client
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}") # Logger
        self._policy = retry_policy or RetryPolicy.from_env() # Retry policy
        # Circuit breaker to isolate persistent failures
        self._breaker = breaker or _CircuitBreaker(
            failure_threshold=int(os.getenv("FS_BREAKER_THRESHOLD", "5")),
            window_s=float(os.getenv("FS_BREAKER_WINDOW_S", "30")),
            reset_timeout_s=float(os.getenv("FS_BREAKER_RESET_S", "15")),
        ) # Circuit breaker

    @property
    def client(self) -> FirestoreClientBoundary:
        """Firestore client (read-only)."""

        return self._client

    def _translate_error(self, operation: str, error: Exception) -> FirestoreError:
        """Convert a google-api-core error into the repository error family."""

        if isinstance(error, FirestoreError):
            return error
        if isinstance(error, PermissionDenied):
            self.logger.error(f"Permission denied during {operation}: {error}")
            return PermissionError(f"Permission denied during {operation}", error)
        if isinstance(error, NotFound):
            self.logger.warning(f"Resource not found during {operation}: {error}")
            return NotFoundError(f"Resource not found during {operation}", error)
        if isinstance(error, (AlreadyExists, Conflict)):
            return AlreadyExistsError(f"Resource already exists during {operation}", error)
        if isinstance(error, FailedPrecondition):
            return ConcurrentModificationError(f"Concurrent modification during {operation}", error)
        if isinstance(error, _TRANSIENT_ERRORS):
            self.logger.warning(f"Transient failure during {operation}: {error}")
            return TransientStoreError(f"Store unavailable during {operation}: {error}", error)

        self.logger.error(f"Unexpected error during {operation}: {error}")
        return FirestoreError(f"Error during {operation}: {str(error)}", original_error=error)

    def _handle_firestore_error(self, operation: str, error: Exception) -> None:
        """Translate and raise."""

        raise self._translate_error(operation, error) from error

    def _execute_with_retry(self, op_name: str, func: Callable[[], T]) -> T:
        """Execute func with bounded retries and soft time budget under a breaker.

        Only transient failures are retried. Non-retryable errors and exhausted
        retries are translated into the FirestoreError family and raised.
        """

        if not self._breaker.allow_call():
            raise TransientStoreError(f"Breaker open for operation: {op_name}")

        start = time.monotonic()
        attempt = 0
        while True:
            try:
                result = func()
                self._breaker.on_success()

                return result
            except _TRANSIENT_ERRORS as e:
                if (time.monotonic() - start) >= self._policy.op_timeout_s or attempt >= self._policy.max_retries:
                    self._breaker.on_failure()
                    self._handle_firestore_error(op_name, e)

                # Exponential backoff with full jitter
                sleep_ceiling = min(
                    self._policy.backoff_cap_s,
                    self._policy.backoff_base_s * (self._policy.backoff_factor ** attempt),
                )

                time.sleep(random.uniform(0.0, max(0.0, sleep_ceiling)))
                attempt += 1
            except Exception as e:
                self._handle_firestore_error(op_name, e)
