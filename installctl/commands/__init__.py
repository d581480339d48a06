from . import cluster, server, store

__all__ = ['cluster', 'server', 'store']
