"""
Circuit breaker protection for outbound calls.

The generative backend (OpenRouter) and the web search provider (Tavily) are
wrapped in breakers so a degraded service fails fast instead of stalling every
chat turn behind its network timeout.

States:
- CLOSED: calls pass through
- OPEN: calls fail immediately with pybreaker.CircuitBreakerError
- HALF_OPEN: the next call tests whether the service recovered

Usage:
    from shared.circuit_breaker import call_with_breaker, openrouter_breaker

    reply = await call_with_breaker(openrouter_breaker, llm.ainvoke, messages)
"""

import logging
import time
from typing import Any, Callable

import pybreaker

logger = logging.getLogger(__name__)


class CircuitBreakerLogger(pybreaker.CircuitBreakerListener):
    """Log breaker state transitions."""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state) -> None:
        if new_state.name == "open":
            logger.warning(
                f"Circuit breaker '{cb.name}' OPENED | failing fast for {cb.reset_timeout}s"
            )
        elif new_state.name == "half-open":
            logger.info(f"Circuit breaker '{cb.name}' HALF-OPEN | probing service")
        elif new_state.name == "closed":
            logger.info(f"Circuit breaker '{cb.name}' CLOSED | service recovered")
        else:
            logger.info(
                f"Circuit breaker '{cb.name}' state: {old_state.name} -> {new_state.name}"
            )


_breakers: dict[str, pybreaker.CircuitBreaker] = {}
_failure_counts: dict[str, int] = {}
_opened_at: dict[str, float] = {}
_logger_instance = CircuitBreakerLogger()


def get_circuit_breaker(
    name: str,
    fail_max: int = 5,
    reset_timeout: int = 30,
    exclude: list[type] | None = None,
) -> pybreaker.CircuitBreaker:
    """
    Get or create the named circuit breaker.

    Args:
        name: Unique identifier for the breaker
        fail_max: Consecutive failures before the circuit opens
        reset_timeout: Seconds before a half-open trial call is allowed
        exclude: Exception types that do not count as failures

    Returns:
        CircuitBreaker instance (one per name)
    """
    if name not in _breakers:
        _breakers[name] = pybreaker.CircuitBreaker(
            name=name,
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            exclude=exclude or [],
            listeners=[_logger_instance],
        )
        logger.info(
            f"Created circuit breaker '{name}' | "
            f"fail_max={fail_max} | reset_timeout={reset_timeout}s"
        )
    return _breakers[name]


# OpenRouter (LLM API): every non-FAQ chat turn depends on it
openrouter_breaker = get_circuit_breaker(
    name="openrouter",
    fail_max=5,
    reset_timeout=30,
)

# Tavily (web search): optional enrichment, trips sooner and stays open longer
tavily_breaker = get_circuit_breaker(
    name="tavily",
    fail_max=3,
    reset_timeout=60,
)


async def call_with_breaker(
    breaker: pybreaker.CircuitBreaker,
    func: Callable,
    *args,
    **kwargs,
) -> Any:
    """
    Await func(*args, **kwargs) under breaker protection (native asyncio).

    pybreaker's call_async() depends on Tornado, so consecutive failures and
    the open → half-open timeout are tracked here around a plain await:
    - OPEN: fail fast until reset_timeout has elapsed, then allow a trial call (HALF_OPEN)
    - fail_max consecutive failures, or one failure while HALF_OPEN, open it
    - a success resets the failure count and closes a HALF_OPEN circuit

    Raises:
        pybreaker.CircuitBreakerError: If the circuit is open
        Exception: Any exception raised by func
    """
    name = breaker.name

    if breaker.current_state == pybreaker.STATE_OPEN:
        opened_at = _opened_at.setdefault(name, time.monotonic())
        if time.monotonic() - opened_at < breaker.reset_timeout:
            logger.warning(f"Circuit breaker '{name}' is OPEN, failing fast")
            raise pybreaker.CircuitBreakerError(breaker)
        breaker.half_open()

    try:
        result = await func(*args, **kwargs)

    except pybreaker.CircuitBreakerError:
        raise

    except Exception as e:
        if breaker.is_system_error(e):
            failures = _failure_counts.get(name, 0) + 1
            _failure_counts[name] = failures
            logger.warning(
                f"Circuit breaker '{name}' recorded failure {failures}/{breaker.fail_max}: "
                f"{type(e).__name__}: {e}"
            )
            if breaker.current_state == pybreaker.STATE_HALF_OPEN or failures >= breaker.fail_max:
                _trip(breaker)
        raise

    _failure_counts[name] = 0
    if breaker.current_state == pybreaker.STATE_HALF_OPEN:
        breaker.close()
    return result


def _trip(breaker: pybreaker.CircuitBreaker) -> None:
    breaker.open()
    _opened_at[breaker.name] = time.monotonic()
    _failure_counts[breaker.name] = 0


def reset_breaker(breaker: pybreaker.CircuitBreaker) -> None:
    """Force a breaker back to CLOSED with a clean failure count."""
    breaker.close()
    _failure_counts.pop(breaker.name, None)
    _opened_at.pop(breaker.name, None)


def get_breaker_status() -> dict[str, dict[str, Any]]:
    """Snapshot of every breaker, reported by the /health endpoint."""
    return {
        name: {
            "state": breaker.current_state,
            "consecutive_failures": _failure_counts.get(name, 0),
            "reset_timeout": breaker.reset_timeout,
        }
        for name, breaker in _breakers.items()
    }
