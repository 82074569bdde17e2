"""
Change ingestion: the filesystem watch source and the debouncer it feeds.
"""

from .debouncer import DEFAULT_DEBOUNCE_SECONDS, Debouncer
from .source import ChangeEventHandler, WatchSource

__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "ChangeEventHandler",
    "Debouncer",
    "WatchSource",
]
