"""
Result ordering.

A sort function is a two-node "sorts before" predicate, as in
``lambda a, b: a.title < b.title``. A sort specifier is either such a
function or the name of a registered one.
"""
from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, Optional, Union

from roamql.node import Node
from roamql.query.errors import UnknownSortError
from roamql.query.registry import SortFunction, SortRegistry

SortSpec = Union[None, str, SortFunction]


def before(key: Callable[[Node], Any], reverse: bool = False) -> SortFunction:
    """
    Build a sort function from a key; nodes whose key is None sort last.

    Args:
        key: Attribute projection
        reverse: Larger keys first
    """
    def sorts_before(a: Node, b: Node) -> bool:
        ka, kb = key(a), key(b)
        if ka is None:
            return False
        if kb is None:
            return True
        return ka > kb if reverse else ka < kb
    return sorts_before


def _lower(attr: str) -> Callable[[Node], Any]:
    def key(node: Node) -> Any:
        value = getattr(node, attr)
        return value.lower() if value else None
    return key


def register_builtin_sorts(registry: SortRegistry) -> None:
    """Register the built-in sort functions."""
    registry.register("title", before(_lower("title")), "Title, A to Z")
    registry.register("title-reverse", before(_lower("title"), reverse=True), "Title, Z to A")
    registry.register("file", before(lambda n: n.file), "File path")
    registry.register("file-title", before(_lower("file_title")), "File title, A to Z")
    registry.register("file-mtime", before(lambda n: n.file_mtime, reverse=True), "Most recently modified file first")
    registry.register("file-atime", before(lambda n: n.file_atime, reverse=True), "Most recently accessed file first")
    registry.register("scheduled", before(lambda n: n.scheduled), "Earliest scheduled first")
    registry.register("deadline", before(lambda n: n.deadline), "Earliest deadline first")
    registry.register("priority", before(lambda n: n.priority), "Highest priority (A) first")
    registry.register("todo", before(lambda n: n.todo), "TODO keyword")
    registry.register("level", before(lambda n: n.level), "Outline level, shallowest first")


def resolve_sort(sort: SortSpec, registry: SortRegistry) -> Optional[SortFunction]:
    """
    Turn a sort specifier into a sort function.

    Raises:
        UnknownSortError: If ``sort`` is neither callable nor a registered name
    """
    if sort is None:
        return None
    if callable(sort):
        return sort
    entry = registry.get(sort)
    if entry is None:
        raise UnknownSortError(sort)
    return entry.function


def order_nodes(nodes: Iterable[Node], sort: SortSpec, registry: SortRegistry) -> List[Node]:
    """
    Order resolved nodes.

    Without a specifier the input order is kept. Sorting is stable.
    """
    function = resolve_sort(sort, registry)
    nodes = list(nodes)
    if function is None:
        return nodes

    def compare(a: Node, b: Node) -> int:
        if function(a, b):
            return -1
        if function(b, a):
            return 1
        return 0

    return sorted(nodes, key=cmp_to_key(compare))
