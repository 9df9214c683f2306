"""Shared data models."""

from .test import Options, Test

__all__ = [
    "Options",
    "Test",
]
