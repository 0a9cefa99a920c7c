"""
kvspine - namespaced key-value cache storage over Python's dbm handlers.

- kvspine.core: errors, logging, settings, events
- kvspine.storage: DbmCache and its components
"""

__version__ = "0.1.0"

from kvspine.core import *  # noqa
from kvspine.storage import DbmCache, DbmMode, DbmOptions, IteratorMode  # noqa
