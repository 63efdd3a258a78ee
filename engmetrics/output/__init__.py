"""Console and JSON rendering of statistics."""

from .formatter_base import OutputFormatter

__all__ = ['OutputFormatter']
