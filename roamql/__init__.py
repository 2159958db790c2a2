"""
roamql - Query language for knowledge-graph nodes

Resolves declarative, composable queries over the nodes of a roam-style
note graph into ordered result lists, with an extensible vocabulary of
predicates, graph expansions and sort orders.

Example Usage:
    >>> from roamql import NodeStore, QueryEngine
    >>> store = NodeStore("roam.db")
    >>> engine = QueryEngine(store)
    >>> engine.nodes('(and (todo "TODO") (tags "work"))', sort="title")
    >>> engine.nodes('(backlink-to (title "Project Alpha" t))')
"""

__version__ = "0.3.0"
__author__ = "roamql Contributors"

# Node store
from roamql.db import NodeStore, get_store
from roamql.node import Node

# Configuration
from roamql.config import RoamqlConfig, get_config, init_config

# Query core
from roamql.query import (
    QueryEngine,
    QueryResult,
    get_engine,
    defpredicate,
    defexpansion,
    register_sort,
    add_saved_query,
    clear_cache,
    nodes,
)

__all__ = [
    # Store
    "NodeStore",
    "get_store",
    "Node",
    # Config
    "RoamqlConfig",
    "get_config",
    "init_config",
    # Query
    "QueryEngine",
    "QueryResult",
    "get_engine",
    "defpredicate",
    "defexpansion",
    "register_sort",
    "add_saved_query",
    "clear_cache",
    "nodes",
]
