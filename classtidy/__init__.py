"""Merge redundant utility class pairs inside template class attributes."""

__version__ = '0.1.0'
