"""Process-wide table of interceptor functions, keyed by name.

Collections refer to interceptors by name only, so the same function can
guard several collections.
"""

from collections.abc import Callable
from typing import Any

# Interceptor signature: (MutationState) -> abort reason | None
InterceptorFn = Callable[[Any], "str | None"]


class InterceptorRegistry:
    """Registry for interceptor implementations.

    Example:
        @interceptor("rejectArchived")
        def reject_archived(state):
            if state.payload.get("archived"):
                return "Archived documents are read-only"
            return None
    """

    _interceptors: dict[str, InterceptorFn] = {}

    @classmethod
    def register(cls, name: str, fn: InterceptorFn) -> None:
        """Register an interceptor by name.

        Idempotent: re-registering the same name is a no-op.
        """
        if name in cls._interceptors:
            return
        cls._interceptors[name] = fn

    @classmethod
    def get(cls, name: str) -> InterceptorFn:
        """Get a registered interceptor.

        Raises:
            ValueError: If the interceptor is not registered
        """
        if name not in cls._interceptors:
            raise ValueError(
                f"Interceptor '{name}' is not registered; "
                "register it with @interceptor before attaching it to a collection"
            )
        return cls._interceptors[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._interceptors

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._interceptors.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._interceptors.clear()


def interceptor(name: str) -> Callable[[InterceptorFn], InterceptorFn]:
    """Decorator to register an interceptor function."""

    def decorator(fn: InterceptorFn) -> InterceptorFn:
        InterceptorRegistry.register(name, fn)
        return fn

    return decorator
