"""
Resolver - evaluates Query Values into node sets.

A node set is a dict of id -> Node. Insertion order follows emission order
but is not part of the contract; ask for a sort if order matters.

Every resolution except explicit node lists goes through the query cache,
keyed by the query value itself.
"""
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from roamql.node import Node
from roamql.query.cache import NodeSet
from roamql.query.core import (
    ALL_NODES, AND, NOT, OR,
    AllNodes, CallableQuery, Combinator, ExpansionCall, NodeList, PredicateCall,
    QueryValue, RawStoreQuery, SavedQueryRef,
)
from roamql.query.errors import (
    AdapterError, CallableContractViolation, ClassificationError,
)

if TYPE_CHECKING:
    from roamql.query.engine import QueryEngine

logger = logging.getLogger(__name__)


def _node_set(nodes) -> NodeSet:
    result: NodeSet = {}
    for node in nodes:
        result.setdefault(node.id, node)
    return result


class Resolver:
    """
    Recursive evaluator.

    The resolver keeps no state of its own; it reads the engine's
    registries and store, and reads/writes the engine's cache.
    """

    def __init__(self, engine: "QueryEngine"):
        self.engine = engine
        self._handlers: Dict[type, Callable[[Any], NodeSet]] = {
            NodeList: self._resolve_node_list,
            RawStoreQuery: self._resolve_raw,
            SavedQueryRef: self._resolve_saved,
            PredicateCall: self._resolve_predicate,
            ExpansionCall: self._resolve_expansion,
            Combinator: self._resolve_combinator,
            CallableQuery: self._resolve_callable,
            AllNodes: self._resolve_all,
        }

    def resolve(self, query: QueryValue) -> NodeSet:
        """Resolve a classified query. The returned dict must not be mutated."""
        handler = self._handlers.get(type(query))
        if handler is None:
            raise ClassificationError(query, "unhandled query value")

        if isinstance(query, NodeList):
            return handler(query)

        try:
            hash(query)
        except TypeError:
            logger.debug(f"Unhashable query, not caching: {query!r}")
            return handler(query)

        cache = self.engine.cache
        cached = cache.get(query, self.engine.store.version)
        if cached is not None:
            logger.debug(f"Cache hit: {query!r}")
            return cached

        result = handler(query)
        cache.put(query, result, self.engine.store.version)
        return result

    def _resolve_node_list(self, query: NodeList) -> NodeSet:
        return _node_set(query.nodes)

    def _resolve_all(self, query: AllNodes) -> NodeSet:
        return _node_set(self.engine.store.all_nodes())

    def _resolve_raw(self, query: RawStoreQuery) -> NodeSet:
        try:
            rows = self.engine.store.query(query.descriptor, *query.args)
        except AdapterError as e:
            if query.fallback:
                raise ClassificationError(query.to_sexp()[1:]) from e
            raise

        ids: List[Any] = []
        seen = set()
        for row in rows:
            if not row or row[0] in seen:
                continue
            seen.add(row[0])
            ids.append(row[0])
        return _node_set(self.engine.store.get_nodes(ids))

    def _resolve_saved(self, query: SavedQueryRef) -> NodeSet:
        return self.resolve(query.query)

    def _resolve_callable(self, query: CallableQuery) -> NodeSet:
        returned = query.func()
        if isinstance(returned, Node):
            return _node_set([returned])
        if isinstance(returned, NodeList):
            return _node_set(returned.nodes)
        if isinstance(returned, (list, tuple)) and all(isinstance(n, Node) for n in returned):
            return _node_set(returned)
        raise CallableContractViolation(query.func, returned)

    def _resolve_combinator(self, query: Combinator) -> NodeSet:
        if query.op == OR:
            result: NodeSet = {}
            for sub in query.queries:
                for node_id, node in self.resolve(sub).items():
                    result.setdefault(node_id, node)
            return result

        if query.op == AND:
            if not query.queries:
                return {}
            first, *rest = [self.resolve(sub) for sub in query.queries]
            return {
                node_id: node for node_id, node in first.items()
                if all(node_id in other for other in rest)
            }

        if query.op == NOT:
            universe = self.resolve(ALL_NODES)
            excluded = self.resolve(query.queries[0])
            return {
                node_id: node for node_id, node in universe.items()
                if node_id not in excluded
            }

        raise ClassificationError(query, f"unknown combinator {query.op!r}")

    def _resolve_predicate(self, query: PredicateCall) -> NodeSet:
        entry = self.engine.predicates.get(query.name)
        if entry is None:
            raise ClassificationError(query.to_sexp(), "predicate is no longer registered")

        result: NodeSet = {}
        for node_id, node in self.resolve(ALL_NODES).items():
            value = entry.extractor(node)
            if value is None:
                continue
            if entry.comparator(value, *query.args):
                result[node_id] = node
        return result

    def _resolve_expansion(self, query: ExpansionCall) -> NodeSet:
        entry = self.engine.expansions.get(query.name)
        if entry is None:
            raise ClassificationError(query.to_sexp(), "expansion is no longer registered")

        expanded = entry.function(self.engine, *query.args, **dict(query.kwargs))
        return self.resolve(self.engine.classify(expanded))
