"""
Utility modules for the webtoon reader backend.

This package contains configuration, logging and error types, the sqlite
store and the single-flight primitive.
"""

from .config import Config

__all__ = ['Config']
