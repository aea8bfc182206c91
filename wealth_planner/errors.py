"""Exceptions raised by the projection engine and its request boundary."""

from __future__ import annotations

from typing import Optional


class ProjectionError(Exception):
    """Base class for projection failures."""


class InvalidInputError(ProjectionError, ValueError):
    """A required field is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ComputationError(ProjectionError, ArithmeticError):
    """A projection produced a non-finite value."""
