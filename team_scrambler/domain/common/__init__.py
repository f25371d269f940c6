"""Shared domain primitives."""

from .result import DomainError, ErrorType, Result

__all__ = ["DomainError", "ErrorType", "Result"]
