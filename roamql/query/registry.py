"""
Registries of query vocabulary.

Three name -> entry tables let callers extend the query language without
touching the resolver:

- PredicateRegistry: name -> (extractor, comparator, docstring)
- ExpansionRegistry: name -> (expansion function, docstring)
- SortRegistry: name -> two-node ordering function

Registering a name always succeeds and overwrites. A name is never valid as
both a predicate and an expansion: registering it in one of the two removes
it from the other. Lookup of an unknown name returns None.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from roamql.node import Node
from roamql.query.core import RESERVED_NAMES
from roamql.query.errors import ReservedNameError
from roamql.query.sexp import intern

logger = logging.getLogger(__name__)

Extractor = Callable[[Node], Any]
Comparator = Callable[..., bool]
SortFunction = Callable[[Node, Node], bool]


@dataclass(frozen=True)
class PredicateEntry:
    """A registered predicate."""
    name: str
    extractor: Extractor
    comparator: Comparator
    docstring: str = ""


@dataclass(frozen=True)
class ExpansionEntry:
    """A registered expansion."""
    name: str
    function: Callable[..., Any]
    docstring: str = ""


@dataclass(frozen=True)
class SortEntry:
    """A registered sort function."""
    name: str
    function: SortFunction
    docstring: str = ""


E = TypeVar("E")


class _Registry(Generic[E]):
    """Name-keyed table with a mutual-exclusion boundary around writes."""

    kind = "entry"

    def __init__(self):
        self._entries: Dict[str, E] = {}
        self._lock = threading.Lock()

    def _store(self, name: str, entry: E) -> None:
        with self._lock:
            if name in self._entries:
                logger.debug(f"Redefining {self.kind} {name!r}")
            self._entries[name] = entry

    def get(self, name: Any) -> Optional[E]:
        """Entry for ``name`` or None if unknown."""
        if not isinstance(name, str):
            return None
        return self._entries.get(name)

    def remove(self, name: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(name, None) is not None

    def has(self, name: Any) -> bool:
        return isinstance(name, str) and name in self._entries

    def list(self) -> List[str]:
        """Registered names, sorted."""
        return sorted(self._entries)

    def info(self) -> List[Dict[str, str]]:
        """Name and docstring of every entry."""
        return [
            {"name": name, "docstring": getattr(self._entries[name], "docstring", "")}
            for name in self.list()
        ]

    def __contains__(self, name: Any) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._entries)


def _check_reserved(name: str) -> None:
    if name in RESERVED_NAMES:
        raise ReservedNameError(f"{name!r} is a reserved keyword and cannot be redefined")


class PredicateRegistry(_Registry[PredicateEntry]):
    """
    Registry of predicates.

    Example:
        predicates.register(
            "title",
            extractor=lambda node: node.title,
            comparator=lambda title, term: term in title,
            docstring="Title contains term",
        )
    """

    kind = "predicate"

    def __init__(self, expansions: Optional["ExpansionRegistry"] = None):
        super().__init__()
        self.expansions = expansions

    def register(
        self,
        name: str,
        extractor: Extractor,
        comparator: Comparator,
        docstring: str = "",
    ) -> PredicateEntry:
        """Register (or redefine) a predicate."""
        name = intern(name)
        _check_reserved(name)
        entry = PredicateEntry(name, extractor, comparator, docstring)
        self._store(name, entry)
        if self.expansions is not None and self.expansions.remove(name):
            logger.debug(f"Removed expansion {name!r} shadowed by predicate")
        return entry


class ExpansionRegistry(_Registry[ExpansionEntry]):
    """
    Registry of expansions.

    An expansion function is called as ``function(engine, *args, **kwargs)``
    and returns any source-or-query, which is resolved in turn.
    """

    kind = "expansion"

    def __init__(self, predicates: Optional[PredicateRegistry] = None):
        super().__init__()
        self.predicates = predicates

    def register(
        self,
        name: str,
        function: Callable[..., Any],
        docstring: str = "",
    ) -> ExpansionEntry:
        """Register (or redefine) an expansion."""
        name = intern(name)
        _check_reserved(name)
        entry = ExpansionEntry(name, function, docstring)
        self._store(name, entry)
        if self.predicates is not None and self.predicates.remove(name):
            logger.debug(f"Removed predicate {name!r} shadowed by expansion")
        return entry


class SortRegistry(_Registry[SortEntry]):
    """Registry of two-node "sorts before" functions."""

    kind = "sort"

    def register(self, name: str, function: SortFunction, docstring: str = "") -> SortEntry:
        """Register (or redefine) a sort function."""
        name = intern(name)
        entry = SortEntry(name, function, docstring)
        self._store(name, entry)
        return entry


def linked_registries():
    """Create a predicate and an expansion registry that exclude each other."""
    predicates = PredicateRegistry()
    expansions = ExpansionRegistry(predicates)
    predicates.expansions = expansions
    return predicates, expansions
