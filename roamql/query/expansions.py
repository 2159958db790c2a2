"""
Built-in expansions.

An expansion turns its arguments into a new source-or-query. The link
expansions walk the graph one hop from the nodes of an inner query:

    (backlink-to (id "abc123"))              nodes linking to abc123
    (backlink-from (tags "project") :combine :or)
                                             nodes some project node links to
    (backlink-to (todo "TODO") :type "id")   only id links count

Combine modes:
- :and (default): the candidate must be linked with every node of the inner
  query
- :or: the candidate must be linked with at least one of them
"""
import logging
from typing import TYPE_CHECKING, Any, Optional

from roamql.query.core import NodeList
from roamql.query.errors import InvalidCombineModeError
from roamql.query.registry import ExpansionRegistry

if TYPE_CHECKING:
    from roamql.query.engine import QueryEngine

logger = logging.getLogger(__name__)


def combine_mode(token: Any) -> str:
    """Normalise :and / :or (with or without the colon)."""
    mode = str(token).lstrip(":").lower() if isinstance(token, str) else None
    if mode not in ("and", "or"):
        raise InvalidCombineModeError(token)
    return mode


def expand_links(
    engine: "QueryEngine",
    query: Any,
    group_by: str,
    link_type: Optional[str] = None,
    combine: Any = ":and",
) -> NodeList:
    """
    Nodes on the far side of links touching the nodes of ``query``.

    Args:
        engine: Engine used to resolve the inner query and reach the store
        query: Inner source-or-query
        group_by: "source" to collect nodes linking into the set, "dest" to
            collect nodes the set links to
        link_type: Optional link type restriction
        combine: :and or :or
    """
    mode = combine_mode(combine)
    members = engine.resolve(query)
    if not members:
        return NodeList(())

    counts = engine.store.link_counts(members.keys(), group_by=group_by, link_type=link_type)
    wanted = len(members)
    if mode == "and":
        ids = [endpoint for endpoint, count in counts if count == wanted]
    else:
        ids = [endpoint for endpoint, count in counts if count >= 1]

    nodes = engine.store.get_nodes(ids)
    logger.debug(f"Link expansion ({group_by}, {mode}) over {wanted} nodes -> {len(nodes)} nodes")
    return NodeList(tuple(nodes))


def backlink_to(engine: "QueryEngine", query: Any, type: Optional[str] = None, combine: Any = ":and") -> NodeList:
    return expand_links(engine, query, "source", type, combine)


def backlink_from(engine: "QueryEngine", query: Any, type: Optional[str] = None, combine: Any = ":and") -> NodeList:
    return expand_links(engine, query, "dest", type, combine)


def register_builtin_expansions(registry: ExpansionRegistry) -> None:
    """Register the built-in expansion vocabulary."""
    registry.register(
        "backlink-to", backlink_to,
        "Nodes that link to the nodes of QUERY. Keys: :type TYPE, :combine :and|:or.",
    )
    registry.register(
        "backlink-from", backlink_from,
        "Nodes linked from the nodes of QUERY. Keys: :type TYPE, :combine :and|:or.",
    )
