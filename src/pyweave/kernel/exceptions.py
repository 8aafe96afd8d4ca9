"""Unified exception hierarchy for pyweave.

All framework exceptions inherit from PyWeaveException, enabling unified
error handling across modules.

Categories:
- InfrastructureException: framework configuration and wiring failures
- AopConfigException: advice/proxy configuration defects, raised eagerly
- AopInvocationException: a proxy could not reach its target
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Base Exception
# =============================================================================


class PyWeaveException(Exception):
    """Base exception for all pyweave errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "AOP_CONFIG").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(PyWeaveException):
    """Framework wiring and configuration failures."""


# =============================================================================
# AOP Exceptions
# =============================================================================


class AopConfigException(InfrastructureException):
    """Illegal AOP configuration: impossible proxy strategy, frozen config, ..."""

    def __init__(self, message: str, code: str = "AOP_CONFIG", context: dict | None = None) -> None:
        super().__init__(message, code=code, context=context)


class UnknownAdviceTypeError(AopConfigException):
    """An object is neither a MethodInterceptor nor supported by any adapter."""

    def __init__(self, advice: Any) -> None:
        self.advice = advice
        super().__init__(
            f"Advice object [{advice!r}] is neither a supported subinterface of "
            f"Advice nor an Advisor",
            code="AOP_UNKNOWN_ADVICE",
            context={"advice_type": type(advice).__qualname__},
        )


class ChainCacheInconsistencyError(AopConfigException):
    """A cached interceptor chain references an advisor that is no longer registered."""

    def __init__(self, advisor: Any, method: Any) -> None:
        self.advisor = advisor
        self.method = method
        super().__init__(
            f"Cached chain for {method} references unregistered advisor {advisor!r}",
            code="AOP_STALE_CHAIN",
            context={"method": str(method)},
        )


class AopInvocationException(InfrastructureException):
    """The proxy could not obtain or call its target."""

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message, code="AOP_INVOCATION", context=context)
