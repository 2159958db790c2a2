"""
Resolution cache.

Maps a classified query value to the node set it resolved to. Entries live
until ``clear()`` is called. When version tracking is on, every entry also
records the node store's generation token at write time and is treated as a
miss once the store has moved on. Changes made to the database behind the
store's back do not move the token; clear the cache after those.
"""
import logging
import threading
from typing import Any, Dict, Hashable, Optional, Tuple

from roamql.node import Node

logger = logging.getLogger(__name__)

NodeSet = Dict[str, Node]


class QueryCache:
    """
    Process-wide memo table for resolved queries.

    Example:
        cache = QueryCache()
        cache.put(query, nodes, version=store.version)
        cache.get(query, version=store.version)  # nodes, until the store changes
    """

    def __init__(self, enabled: bool = True, track_version: bool = True):
        self.enabled = enabled
        self.track_version = track_version
        self._entries: Dict[Hashable, Tuple[Any, NodeSet]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, version: Any = None) -> Optional[NodeSet]:
        """Cached node set for ``key``, or None on a miss or a stale entry."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_version, nodes = entry
            if self.track_version and stored_version != version:
                logger.debug(f"Stale cache entry (version {stored_version} != {version})")
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return nodes

    def put(self, key: Hashable, nodes: NodeSet, version: Any = None) -> None:
        """Store a resolved node set."""
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (version, nodes)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
        logger.debug("Query cache cleared")

    def stats(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
