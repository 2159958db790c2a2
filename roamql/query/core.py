"""
Core query value types.

This module defines the closed set of Query Value variants the classifier
produces and the resolver consumes:

- NodeList: explicit nodes
- RawStoreQuery: descriptor + args forwarded verbatim to the node store
- SavedQueryRef: a named saved query and the value it stands for
- PredicateCall: (name arg ...) filtering the node universe
- ExpansionCall: (name arg ...) producing a new query
- Combinator: (and|or|not query ...)
- CallableQuery: zero-argument function returning nodes
- AllNodes: the full node universe

and QueryResult, the ordered result handed to consumers.

All variants are frozen and hashable so they can key the resolution cache.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from roamql.node import Node
from roamql.query.sexp import Symbol

AND = "and"
OR = "or"
NOT = "not"
COMBINATORS = (AND, OR, NOT)

# Head token marking a raw store query: ["sql", descriptor, *args]
RAW_TOKEN = "sql"

RESERVED_NAMES = frozenset(COMBINATORS + (RAW_TOKEN,))


def freeze(value: Any) -> Any:
    """Recursively convert lists, dicts and sets into hashable equivalents."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple((k, freeze(v)) for k, v in value.items())
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(v) for v in value)
    return value


class QueryValue:
    """Marker base class for all query value variants."""

    def to_sexp(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class NodeList(QueryValue):
    """An explicit sequence of nodes."""
    nodes: Tuple[Node, ...] = ()

    def to_sexp(self) -> Any:
        return [Symbol("nodes")] + [n.id for n in self.nodes]


@dataclass(frozen=True)
class RawStoreQuery(QueryValue):
    """
    A query forwarded verbatim to the node store.

    ``fallback`` marks values the classifier produced for a list whose head
    it did not recognise; a store failure on those is reported as the
    original classification error.
    """
    descriptor: str
    args: Tuple[Any, ...] = ()
    fallback: bool = field(default=False, compare=False)

    def to_sexp(self) -> Any:
        return [Symbol(RAW_TOKEN), self.descriptor, *self.args]


@dataclass(frozen=True)
class SavedQueryRef(QueryValue):
    """A saved query name together with its classified value."""
    name: str
    query: QueryValue

    def to_sexp(self) -> Any:
        return Symbol(self.name)


@dataclass(frozen=True)
class PredicateCall(QueryValue):
    """A registered predicate applied to arguments."""
    name: str
    args: Tuple[Any, ...] = ()

    def to_sexp(self) -> Any:
        return [Symbol(self.name), *self.args]


@dataclass(frozen=True)
class ExpansionCall(QueryValue):
    """A registered expansion applied to arguments."""
    name: str
    args: Tuple[Any, ...] = ()
    kwargs: Tuple[Tuple[str, Any], ...] = ()

    def to_sexp(self) -> Any:
        parts: List[Any] = [Symbol(self.name), *self.args]
        for key, value in self.kwargs:
            parts.extend([Symbol(f":{key}"), value])
        return parts


@dataclass(frozen=True)
class Combinator(QueryValue):
    """Set algebra over sub-queries."""
    op: str
    queries: Tuple[QueryValue, ...] = ()

    def to_sexp(self) -> Any:
        return [Symbol(self.op)] + [q.to_sexp() for q in self.queries]


@dataclass(frozen=True)
class CallableQuery(QueryValue):
    """A zero-argument function returning nodes."""
    func: Callable[[], Any]

    def to_sexp(self) -> Any:
        return Symbol(f"#<function {getattr(self.func, '__name__', 'anonymous')}>")


@dataclass(frozen=True)
class AllNodes(QueryValue):
    """The full node universe."""

    def to_sexp(self) -> Any:
        return Symbol("all")


ALL_NODES = AllNodes()


@dataclass
class QueryResult:
    """
    Result of running a query.

    Iterating yields nodes in their final order. ``metadata`` records the
    printed query and the sort that was applied.
    """
    nodes: List[Node] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def count(self) -> int:
        """Total number of nodes."""
        return len(self.nodes)

    @property
    def ids(self) -> List[str]:
        """Node ids in result order."""
        return [n.id for n in self.nodes]

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __contains__(self, node: Any) -> bool:
        if isinstance(node, str):
            return node in self.ids
        return node in self.nodes

    @classmethod
    def from_nodes(
        cls,
        nodes: List[Node],
        metadata: Optional[Dict[str, Any]] = None
    ) -> "QueryResult":
        """Create result from a list of nodes."""
        return cls(nodes=list(nodes), metadata=metadata or {})

    @classmethod
    def empty(cls) -> "QueryResult":
        """Create an empty result."""
        return cls(nodes=[], metadata={})
