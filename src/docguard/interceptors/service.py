"""Runs the interceptors attached to a collection, in attach order."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from docguard.errors import InterceptorAbortError
from docguard.interceptors.registry import InterceptorRegistry
from docguard.interceptors.types import InterceptorDefinition

if TYPE_CHECKING:
    from docguard.gate import MutationState

logger = logging.getLogger(__name__)


class InterceptorService:
    """Short-circuiting chain of before-commit interceptors.

    The first interceptor that returns a reason, or raises, aborts the
    mutation; later interceptors do not run and the store is never called.
    """

    def run(self, definitions: list[InterceptorDefinition], state: MutationState) -> None:
        """Run every applicable interceptor.

        Raises:
            InterceptorAbortError: An interceptor refused the mutation
        """
        for definition in definitions:
            if state.kind not in definition.on:
                continue

            try:
                fn = InterceptorRegistry.get(definition.name)
            except ValueError:
                logger.warning("Interceptor '%s' is not registered, skipping", definition.name)
                continue

            try:
                reason = fn(state)
            except Exception as e:
                logger.warning("Interceptor '%s' failed: %s", definition.name, e)
                raise InterceptorAbortError(
                    definition.name, f"Interceptor '{definition.name}' failed: {e}"
                ) from e

            if reason:
                raise InterceptorAbortError(definition.name, reason)
