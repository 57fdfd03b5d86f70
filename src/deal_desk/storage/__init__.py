"""Storage layer for the deal database."""

from .database import DealDatabase

__all__ = ["DealDatabase"]
