"""
Controllers package for the webtoon reader backend.

This package contains the command layer the UI talks to: the webtoon cache
controller and the user library controller.
"""

from .webtoon_controller import WebtoonController, RefreshAction, decide_refresh
from .library_controller import LibraryController

__all__ = ['WebtoonController', 'RefreshAction', 'decide_refresh', 'LibraryController']
