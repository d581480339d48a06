"""
Cluster record modules: models, validation, plan building and the store.
"""
from .clusters import ClusterService
from .store import ClusterStore, FileStore, MemoryStore, Watch, WatchEvent, get_store

__all__ = [
    'ClusterService',
    'ClusterStore',
    'FileStore',
    'MemoryStore',
    'Watch',
    'WatchEvent',
    'get_store',
]
