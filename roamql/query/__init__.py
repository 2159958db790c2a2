"""
roamql query core - composable queries over knowledge-graph nodes.

A source-or-query is anything the classifier understands: nodes, saved
query names, raw store queries, predicate and expansion calls, and/or/not
combinations, or zero-argument callables. The engine classifies it once,
resolves it to a deduplicated node set (memoised), and orders the result.

Example:
    from roamql.query import QueryEngine

    engine = QueryEngine(store)
    for node in engine.nodes('(and (todo "TODO") (tags "work"))', sort="title"):
        print(node.title)

    engine.defpredicate(
        "has-olp", "Node is a nested heading",
        lambda node: node.olp or None,
        lambda olp: len(olp) > 0,
    )
"""

from roamql.query.core import (
    QueryValue,
    NodeList,
    RawStoreQuery,
    SavedQueryRef,
    PredicateCall,
    ExpansionCall,
    Combinator,
    CallableQuery,
    AllNodes,
    QueryResult,
)

from roamql.query.errors import (
    QueryError,
    ClassificationError,
    UnknownSortError,
    InvalidCombineModeError,
    CallableContractViolation,
    AdapterError,
    ReservedNameError,
    SavedQueryError,
)

from roamql.query.registry import (
    PredicateRegistry,
    ExpansionRegistry,
    SortRegistry,
)

from roamql.query.cache import QueryCache
from roamql.query.classifier import Classifier, NodeViewer
from roamql.query.saved import SavedQueryStore
from roamql.query.sexp import Symbol, read, dumps

from roamql.query.engine import (
    QueryEngine,
    get_engine,
    defpredicate,
    defexpansion,
    register_sort,
    add_saved_query,
    clear_cache,
    nodes,
)

__all__ = [
    # Values
    "QueryValue",
    "NodeList",
    "RawStoreQuery",
    "SavedQueryRef",
    "PredicateCall",
    "ExpansionCall",
    "Combinator",
    "CallableQuery",
    "AllNodes",
    "QueryResult",
    # Errors
    "QueryError",
    "ClassificationError",
    "UnknownSortError",
    "InvalidCombineModeError",
    "CallableContractViolation",
    "AdapterError",
    "ReservedNameError",
    "SavedQueryError",
    # Registries
    "PredicateRegistry",
    "ExpansionRegistry",
    "SortRegistry",
    "SavedQueryStore",
    "QueryCache",
    "Classifier",
    "NodeViewer",
    # Grammar
    "Symbol",
    "read",
    "dumps",
    # Engine
    "QueryEngine",
    "get_engine",
    "defpredicate",
    "defexpansion",
    "register_sort",
    "add_saved_query",
    "clear_cache",
    "nodes",
]
