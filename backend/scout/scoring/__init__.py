"""Scoring engines for tracked matches."""

from . import doubles

__all__ = [
    "doubles",
]
