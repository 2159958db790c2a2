"""
Classifier - turns arbitrary source-or-query input into a Query Value tree.

Rules, first match wins:

1. A Node or a sequence of Nodes -> NodeList
2. A name of a saved query -> SavedQueryRef (the stored query, classified)
3. A name of a bookmarked query -> the bookmark's query, classified
4. A node viewer (by name or object) -> NodeList of the nodes it shows
5. ["sql", descriptor, *args] -> RawStoreQuery
6. [head, *args] with head and/or/not, a predicate or an expansion
   -> Combinator / PredicateCall / ExpansionCall; an unknown head falls
   back to a raw store query that reports this rule's error if the store
   rejects it
7. A zero-argument callable -> CallableQuery

Anything else is a ClassificationError. Text beginning with "(" is read
with the textual grammar first.
"""
import inspect
import logging
from typing import (
    Any, Callable, Dict, FrozenSet, Mapping, Optional, Protocol, Sequence, Tuple,
    runtime_checkable,
)

from roamql.node import Node
from roamql.query.core import (
    COMBINATORS, NOT, RAW_TOKEN,
    CallableQuery, Combinator, ExpansionCall, NodeList, PredicateCall,
    QueryValue, RawStoreQuery, SavedQueryRef, freeze,
)
from roamql.query.errors import ClassificationError
from roamql.query.registry import ExpansionRegistry, PredicateRegistry
from roamql.query.saved import SavedQueryStore
from roamql.query.sexp import Symbol, intern, read

logger = logging.getLogger(__name__)


@runtime_checkable
class NodeViewer(Protocol):
    """Anything that can report the nodes it currently displays."""

    def extract_nodes(self) -> Sequence[Node]:
        ...


def split_keywords(args: Sequence[Any]) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
    """
    Separate ``:key value`` pairs from positional arguments.

    Example:
        split_keywords([q, ":combine", ":or"]) -> ((q,), {"combine": ":or"})
    """
    positional = []
    keywords: Dict[str, Any] = {}
    i = 0
    while i < len(args):
        item = args[i]
        if isinstance(item, str) and item.startswith(":") and len(item) > 1 and i + 1 < len(args):
            keywords[item[1:].replace("-", "_")] = args[i + 1]
            i += 2
        else:
            positional.append(item)
            i += 1
    return tuple(positional), keywords


def takes_no_arguments(func: Callable) -> bool:
    """True if ``func`` can be called without arguments."""
    try:
        inspect.signature(func).bind()
    except TypeError:
        return False
    except ValueError:
        # No introspectable signature (some builtins)
        return True
    return True


def _is_node_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, Node) for v in value)


class Classifier:
    """
    Classifies input against the current registries.

    Args:
        predicates: Predicate registry
        expansions: Expansion registry
        saved: Saved query store
        bookmarks: Optional lookup name -> stored query (or None)
        viewers: Optional mapping name -> NodeViewer
    """

    def __init__(
        self,
        predicates: PredicateRegistry,
        expansions: ExpansionRegistry,
        saved: SavedQueryStore,
        bookmarks: Optional[Callable[[str], Any]] = None,
        viewers: Optional[Mapping[str, NodeViewer]] = None,
    ):
        self.predicates = predicates
        self.expansions = expansions
        self.saved = saved
        self.bookmarks = bookmarks
        self.viewers = viewers if viewers is not None else {}

    def classify(self, value: Any) -> QueryValue:
        """
        Classify ``value`` into a Query Value tree.

        Raises:
            ClassificationError: If any part of the input is not a
                recognised source-or-query
        """
        return self._classify(value, frozenset())

    def is_valid(self, value: Any) -> bool:
        """True if ``value`` classifies without error."""
        try:
            self.classify(value)
        except ClassificationError:
            return False
        return True

    def _classify(self, value: Any, seen: FrozenSet[Any]) -> QueryValue:
        if isinstance(value, QueryValue):
            return value

        if isinstance(value, str) and not isinstance(value, Symbol) and value.lstrip().startswith("("):
            return self._classify(read(value), seen)

        # 1. nodes
        if isinstance(value, Node):
            return NodeList((value,))
        if _is_node_sequence(value):
            return NodeList(tuple(value))

        if isinstance(value, str):
            return self._classify_name(value, seen)

        # 4. viewer object
        if isinstance(value, NodeViewer):
            return self._from_viewer(value)

        if isinstance(value, (list, tuple)) and value:
            return self._classify_form(value, seen)

        # 7. callable
        if callable(value) and takes_no_arguments(value):
            return CallableQuery(value)

        raise ClassificationError(value)

    def _classify_name(self, name: str, seen: FrozenSet[Any]) -> QueryValue:
        key = intern(name)

        # 2. saved query
        entry = self.saved.get(key)
        if entry is not None:
            if ("saved", key) in seen:
                raise ClassificationError(name, "cyclic saved query")
            inner = self._classify(entry.query, seen | {("saved", key)})
            return SavedQueryRef(key, inner)

        # 3. bookmarked query
        if self.bookmarks is not None:
            stored = self.bookmarks(key)
            if stored is not None:
                if ("bookmark", key) in seen:
                    raise ClassificationError(name, "cyclic bookmarked query")
                logger.debug(f"Classified {name!r} as bookmark")
                return self._classify(stored, seen | {("bookmark", key)})

        # 4. viewer by name
        viewer = self.viewers.get(key)
        if viewer is not None:
            return self._from_viewer(viewer)

        raise ClassificationError(name)

    def _from_viewer(self, viewer: NodeViewer) -> NodeList:
        nodes = viewer.extract_nodes()
        if not _is_node_sequence(nodes):
            raise ClassificationError(viewer, "viewer did not return nodes")
        return NodeList(tuple(nodes))

    def _classify_form(self, form: Sequence[Any], seen: FrozenSet[Any]) -> QueryValue:
        head, args = form[0], tuple(form[1:])

        if not isinstance(head, str):
            raise ClassificationError(form)

        # 5. raw store query
        if head == RAW_TOKEN:
            if not args or not isinstance(args[0], str):
                raise ClassificationError(form, "raw query needs a descriptor string")
            return RawStoreQuery(str(args[0]), freeze(args[1:]))

        # 6. query grammar
        if head in COMBINATORS:
            if head == NOT and len(args) != 1:
                raise ClassificationError(form, "not takes exactly one query")
            queries = tuple(self._classify(arg, seen) for arg in args)
            return Combinator(str(head), queries)

        if head in self.predicates:
            return PredicateCall(intern(head), freeze(args))

        if head in self.expansions:
            positional, keywords = split_keywords(args)
            return ExpansionCall(intern(head), freeze(positional), freeze(keywords))

        logger.debug(f"Unknown head {head!r}, trying it as a raw store query")
        return RawStoreQuery(str(head), freeze(args), fallback=True)
