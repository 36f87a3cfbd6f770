"""
shared/utils/resilience.py
Circuit breakers for outbound calls (payment gateway).
"""

import logging
from typing import Iterable

from pybreaker import CircuitBreaker, CircuitBreakerListener

from config.settings import settings

logger = logging.getLogger(__name__)


class _LoggingListener(CircuitBreakerListener):
    def state_change(self, cb, old_state, new_state):
        logger.warning(
            f"Circuit breaker '{cb.name}' changed state: "
            f"{old_state.name if old_state else None} -> {new_state.name}"
        )


class CircuitBreakerManager:
    """Manages circuit breakers for each downstream service."""

    def __init__(self):
        self.breakers = {}

    def get_breaker(self, service_name: str, exclude: Iterable[type] = ()) -> CircuitBreaker:
        """
        Get or create a circuit breaker for a service.
        Exceptions in `exclude` are caller errors: they are re-raised but
        never count towards opening the circuit.
        """
        if service_name not in self.breakers:
            self.breakers[service_name] = CircuitBreaker(
                fail_max=settings.GATEWAY_BREAKER_FAIL_MAX,
                reset_timeout=settings.GATEWAY_BREAKER_RESET_TIMEOUT,
                listeners=[_LoggingListener()],
                name=service_name,
            )
        breaker = self.breakers[service_name]
        missing = [exc for exc in exclude if exc not in breaker.excluded_exceptions]
        if missing:
            breaker.add_excluded_exceptions(*missing)
        return breaker


circuit_breaker_manager = CircuitBreakerManager()
