"""Before-commit interceptors.

Usage:
    from docguard.interceptors import interceptor

    @interceptor("rejectArchived")
    def reject_archived(state):
        if state.payload.get("archived"):
            return "Archived documents are read-only"
        return None

    books.add_interceptor("rejectArchived")
"""

from docguard.interceptors.registry import InterceptorFn, InterceptorRegistry, interceptor
from docguard.interceptors.service import InterceptorService
from docguard.interceptors.types import InterceptorDefinition

__all__ = [
    "InterceptorDefinition",
    "InterceptorFn",
    "InterceptorRegistry",
    "InterceptorService",
    "interceptor",
]
