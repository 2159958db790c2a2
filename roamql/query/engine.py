"""
Query engine - the context that owns registries, cache and store.

Each QueryEngine carries its own predicate, expansion and sort registries,
saved queries and cache, so independent engines (tests, separate stores)
never see each other's definitions.

Example:
    from roamql.query import QueryEngine

    engine = QueryEngine(store)
    engine.nodes('(and (todo "TODO") (tags "work"))', sort="title")

    engine.add_saved_query("weekly", "Open work", '(and (todo "TODO") (tags "work"))')
    engine.nodes("weekly")

The module also keeps a default engine (get_engine) and thin wrappers over
it for the registration API.
"""
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional

from roamql.node import Node
from roamql.query.cache import NodeSet, QueryCache
from roamql.query.classifier import Classifier, NodeViewer
from roamql.query.core import NodeList, QueryResult, QueryValue
from roamql.query.errors import ClassificationError, UnknownSortError
from roamql.query.expansions import register_builtin_expansions
from roamql.query.predicates import register_builtin_predicates
from roamql.query.registry import (
    Comparator, Extractor, SortFunction, SortRegistry, linked_registries,
)
from roamql.query.resolver import Resolver
from roamql.query.saved import SavedQuery, SavedQueryStore
from roamql.query.sexp import dumps
from roamql.query.sorts import SortSpec, order_nodes, register_builtin_sorts

if TYPE_CHECKING:
    from roamql.bookmarks import QueryBookmarks
    from roamql.db import NodeStore

logger = logging.getLogger(__name__)


class QueryEngine:
    """
    Resolves source-or-queries against a node store.

    Args:
        store: Node store adapter (defaults to the global store on first use)
        cache: Resolution cache (a fresh one by default)
        bookmarks: Optional bookmarked-query collaborator
        viewers: Optional mapping name -> NodeViewer
        use_builtins: Register the built-in predicates, expansions and sorts
    """

    def __init__(
        self,
        store: Optional["NodeStore"] = None,
        cache: Optional[QueryCache] = None,
        bookmarks: Optional["QueryBookmarks"] = None,
        viewers: Optional[Dict[str, NodeViewer]] = None,
        use_builtins: bool = True,
    ):
        self._store = store
        self.cache = cache if cache is not None else QueryCache()
        self.bookmarks = bookmarks
        self.viewers: Dict[str, NodeViewer] = dict(viewers or {})

        self.predicates, self.expansions = linked_registries()
        self.sorts = SortRegistry()
        self.saved = SavedQueryStore(validator=self._validate_saved)

        self.classifier = Classifier(
            self.predicates,
            self.expansions,
            self.saved,
            bookmarks=self._bookmarked_query,
            viewers=self.viewers,
        )
        self.resolver = Resolver(self)

        if use_builtins:
            register_builtin_predicates(self.predicates)
            register_builtin_expansions(self.expansions)
            register_builtin_sorts(self.sorts)

    @property
    def store(self) -> "NodeStore":
        if self._store is None:
            from roamql.db import get_store
            self._store = get_store()
        return self._store

    @store.setter
    def store(self, store: "NodeStore") -> None:
        self._store = store

    def _bookmarked_query(self, name: str) -> Any:
        if self.bookmarks is None:
            return None
        return self.bookmarks.get_query(name)

    def _validate_saved(self, query: Any) -> None:
        value = self.classify(query)
        if isinstance(value, NodeList):
            raise ClassificationError(query, "saved queries must be queries, not node lists")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def classify(self, source_or_query: Any) -> QueryValue:
        """Classify input into a Query Value tree."""
        return self.classifier.classify(source_or_query)

    def resolve(self, source_or_query: Any) -> NodeSet:
        """Resolve to an id -> Node mapping (order not guaranteed)."""
        return dict(self.resolver.resolve(self.classify(source_or_query)))

    def nodes(self, source_or_query: Any, sort: SortSpec = None) -> List[Node]:
        """
        Resolve and order.

        Args:
            source_or_query: Anything the classifier accepts
            sort: Registered sort name or a two-node "sorts before" function

        Raises:
            ClassificationError, UnknownSortError, InvalidCombineModeError,
            CallableContractViolation, AdapterError
        """
        resolved = self.resolver.resolve(self.classify(source_or_query))
        return order_nodes(resolved.values(), sort, self.sorts)

    def iter_nodes(self, source_or_query: Any, sort: SortSpec = None) -> Iterator[Node]:
        """Producer interface over the ordered result."""
        yield from self.nodes(source_or_query, sort)

    def query(self, source_or_query: Any, sort: SortSpec = None) -> QueryResult:
        """Resolve and order, returning a QueryResult with metadata."""
        start = time.perf_counter()
        value = self.classify(source_or_query)
        nodes = order_nodes(self.resolver.resolve(value).values(), sort, self.sorts)
        elapsed = time.perf_counter() - start

        sort_name = getattr(sort, "__name__", "custom") if callable(sort) else sort
        return QueryResult.from_nodes(nodes, metadata={
            "query": dumps(value),
            "sort": sort_name,
            "elapsed": elapsed,
        })

    # ------------------------------------------------------------------
    # Registration API
    # ------------------------------------------------------------------

    def defpredicate(self, name: str, docstring: str, extractor: Extractor, comparator: Comparator) -> None:
        """Define (or redefine) a predicate; removes an expansion of the same name."""
        self.predicates.register(name, extractor, comparator, docstring)

    def defexpansion(self, name: str, docstring: str, function: Callable[..., Any]) -> None:
        """Define (or redefine) an expansion; removes a predicate of the same name."""
        self.expansions.register(name, function, docstring)

    def register_sort(self, name: str, function: SortFunction, docstring: str = "") -> None:
        """Register (or redefine) a sort function."""
        self.sorts.register(name, function, docstring)

    def add_saved_query(self, name: str, docstring: str, query: Any) -> SavedQuery:
        """Save a named query after validating it."""
        return self.saved.add(name, docstring, query)

    def register_viewer(self, name: str, viewer: NodeViewer) -> None:
        """Make a node viewer addressable by name."""
        self.viewers[name] = viewer

    def clear_cache(self) -> None:
        """Forget every cached resolution."""
        self.cache.clear()

    def info(self) -> Dict[str, Any]:
        return {
            "predicates": len(self.predicates),
            "expansions": len(self.expansions),
            "sorts": len(self.sorts),
            "saved_queries": len(self.saved),
            "cache": self.cache.stats(),
        }


# Global engine instance
_engine: Optional[QueryEngine] = None


def get_engine(reload: bool = False) -> QueryEngine:
    """
    Get the default engine, built from the global configuration.

    Wires the global node store, cache settings, the bookmarks file and the
    saved queries file (when configured and present).

    Raises:
        UnknownSortError: If the configured default_sort is not registered
    """
    global _engine
    if _engine is None or reload:
        from roamql.bookmarks import QueryBookmarks
        from roamql.config import get_config

        config = get_config()
        cache = QueryCache(
            enabled=config.cache_enabled,
            track_version=config.cache_track_store_version,
        )

        bookmarks = None
        if config.bookmarks_file:
            bookmarks = QueryBookmarks(config.bookmarks_file)

        engine = QueryEngine(cache=cache, bookmarks=bookmarks)
        if config.default_sort and not engine.sorts.has(config.default_sort):
            raise UnknownSortError(config.default_sort)

        if config.saved_queries_file and Path(config.saved_queries_file).exists():
            engine.saved.load_file(config.saved_queries_file)

        _engine = engine
    return _engine


def defpredicate(name: str, docstring: str, extractor: Extractor, comparator: Comparator) -> None:
    get_engine().defpredicate(name, docstring, extractor, comparator)


def defexpansion(name: str, docstring: str, function: Callable[..., Any]) -> None:
    get_engine().defexpansion(name, docstring, function)


def register_sort(name: str, function: SortFunction, docstring: str = "") -> None:
    get_engine().register_sort(name, function, docstring)


def add_saved_query(name: str, docstring: str, query: Any) -> SavedQuery:
    return get_engine().add_saved_query(name, docstring, query)


def clear_cache() -> None:
    get_engine().clear_cache()


def nodes(source_or_query: Any, sort: SortSpec = None) -> List[Node]:
    """Resolve with the default engine."""
    return get_engine().nodes(source_or_query, sort)
