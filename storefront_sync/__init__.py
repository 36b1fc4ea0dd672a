"""storefront-sync: tagged caching and realtime order synchronization for storefronts."""

from .cache import TaggedCache as TaggedCache
from .cache import cached as cached
from .proxy import StorageProxy as StorageProxy
from .refresh import PeriodicRefresher as PeriodicRefresher
from .routes import add_routes as add_routes
from .types import CacheTags as CacheTags

__all__ = [
    "CacheTags",
    "PeriodicRefresher",
    "StorageProxy",
    "TaggedCache",
    "add_routes",
    "cached",
]
