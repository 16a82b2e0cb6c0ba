"""API middleware package."""

from src.meetflow.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
