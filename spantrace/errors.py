"""spantrace error hierarchy and exceptions."""

from __future__ import annotations


class SpanTraceError(Exception):
    """Base exception for all spantrace errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(SpanTraceError):
    """Raised when configuration is invalid or conflicting."""
    pass


class ValidationError(SpanTraceError):
    """Raised when a caller passes an unusable value (empty span name, bad endpoint)."""
    pass


class CollectorError(SpanTraceError):
    """Raised when a span collector cannot be built."""
    pass


class ScopeError(SpanTraceError):
    """Raised when request state is written outside an active request scope."""
    pass
