"""dbm cache storage -- namespaced cache semantics over Python's dbm handlers.

Manifesto:
    Small services often need a persistent cache without running a cache
    server. ``dbm`` ships with every interpreter and offers several
    interchangeable on-disk formats; this package adds the cache layer on
    top: namespaced keys, bulk invalidation, iteration, space
    introspection and typed errors.

Architecture::

    DbmCache (adapter.py)             Orchestrator: get/has/set/add/remove/clear/flush
        |-- DbmOptions (options.py)   pydantic options + ``option`` change events
        |-- BackendHandle (backend.py) lazily opened dbm object, guarded primitives
        |-- KeyCodec (keys.py)        namespace + separator + key
        |-- SpaceAccessor (space.py)  total / available disk space
        |-- Capabilities (capabilities.py)
        |-- DbmKeyIterator (iterator.py)

    HandlerRegistry (handlers.py)     handler name -> dbm module + on-disk files

Modules
-------
adapter         DbmCache
backend         BackendHandle + guarded() warning capture
capabilities    Capabilities descriptor
handlers        HandlerRegistry, available_handlers()
iterator        DbmKeyIterator, IteratorMode
keys            KeyCodec, normalize_key()
options         DbmOptions, DbmMode
space           SpaceAccessor

Tags:
    kvspine, dbm, cache, storage, namespace

Doc-Types:
    package-overview, module-index
"""

from .adapter import DbmCache
from .backend import BackendHandle, guarded
from .capabilities import DBM_SUPPORTED_DATATYPES, Capabilities
from .handlers import HandlerRegistry, HandlerSpec, available_handlers, handler_registry
from .iterator import DbmKeyIterator, IteratorMode
from .keys import KeyCodec, namespace_prefix, normalize_key
from .options import DbmMode, DbmOptions
from .space import SpaceAccessor

__all__ = [
    "DbmCache",
    "BackendHandle",
    "guarded",
    "Capabilities",
    "DBM_SUPPORTED_DATATYPES",
    "HandlerRegistry",
    "HandlerSpec",
    "available_handlers",
    "handler_registry",
    "DbmKeyIterator",
    "IteratorMode",
    "KeyCodec",
    "namespace_prefix",
    "normalize_key",
    "DbmMode",
    "DbmOptions",
    "SpaceAccessor",
]
