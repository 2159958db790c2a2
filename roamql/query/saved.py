"""
Saved queries - named, reusable source-or-queries.

Saved queries live in their own namespace, independent of the predicate and
expansion registries. Names are interned, so "weekly" and Symbol("weekly")
refer to the same entry.

Example YAML:

    weekly:
      description: Open work items
      query: (and (todo "TODO") (tags "work"))

    stale:
      description: Files untouched for a month
      query: (file-mtime < "30 days ago")
"""
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import yaml

from roamql.query.errors import SavedQueryError
from roamql.query.sexp import dumps, intern, read

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedQuery:
    """A stored query with its docstring."""
    name: str
    query: Any
    docstring: str = ""


def parse_saved_queries_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse a YAML file containing saved query definitions.

    Returns:
        Dictionary mapping names to raw definitions
    """
    path = Path(path)

    if not path.exists():
        raise SavedQueryError(f"Saved queries file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SavedQueryError(f"Saved queries file must contain a dictionary, got {type(data)}")

    return data


def query_text(query: Any) -> str:
    """Printed form of a saved query. Names print bare."""
    if isinstance(query, str):
        return str(query)
    return dumps(query)


class SavedQueryStore:
    """
    Name -> (query, docstring) table.

    ``validator`` is called with every query before it is stored and must
    raise if the query is not a storable source-or-query. The query engine
    installs its classifier here.
    """

    def __init__(self, validator: Optional[Callable[[Any], None]] = None):
        self.validator = validator
        self._queries: Dict[str, SavedQuery] = {}
        self._lock = threading.Lock()

    def add(self, name: str, docstring: str, query: Any) -> SavedQuery:
        """
        Add or overwrite a saved query.

        Textual queries are read into their list form before storing.

        Raises:
            ClassificationError: If the validator rejects the query
        """
        entry = self._entry(name, docstring, query)
        self._validate(entry.query)

        with self._lock:
            self._queries[entry.name] = entry
        logger.debug(f"Saved query {entry.name!r}")
        return entry

    @staticmethod
    def _entry(name: str, docstring: str, query: Any) -> SavedQuery:
        # "(...)" is query text, '"name"' a quoted name; other strings are names
        if isinstance(query, str) and query.lstrip().startswith(("(", '"')):
            query = read(query)
        return SavedQuery(intern(name), query, docstring or "")

    def _validate(self, query: Any) -> None:
        if self.validator is not None:
            self.validator(query)

    def get(self, name: Any) -> Optional[SavedQuery]:
        """Look up by string or symbol name."""
        if not isinstance(name, str):
            return None
        return self._queries.get(intern(name))

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._queries.pop(intern(name), None) is not None

    def has(self, name: Any) -> bool:
        return self.get(name) is not None

    def list(self) -> List[str]:
        return sorted(self._queries)

    def info(self) -> List[Dict[str, str]]:
        """Name, docstring and printed query of every entry."""
        return [
            {
                "name": name,
                "docstring": self._queries[name].docstring,
                "query": query_text(self._queries[name].query),
            }
            for name in self.list()
        ]

    def load_file(self, path: Union[str, Path]) -> int:
        """
        Load saved queries from a YAML file.

        Entries may refer to each other in any order: all of them are
        stored first and validated afterwards. If any entry fails, the
        table is restored to what it held before the load.

        Returns:
            Number of queries loaded
        """
        data = parse_saved_queries_file(path)
        entries = []

        for name, definition in data.items():
            if isinstance(definition, dict):
                if "query" not in definition:
                    raise SavedQueryError(f"Saved query {name!r} has no 'query'")
                entries.append(self._entry(name, definition.get("description", ""), definition["query"]))
            else:
                entries.append(self._entry(name, "", definition))

        with self._lock:
            previous = dict(self._queries)
            self._queries.update((entry.name, entry) for entry in entries)

        try:
            for entry in entries:
                self._validate(entry.query)
        except Exception:
            with self._lock:
                self._queries = previous
            raise

        logger.info(f"Loaded {len(entries)} saved queries from {path}")
        return len(entries)

    def save_file(self, path: Union[str, Path]) -> int:
        """
        Write saved queries to a YAML file. Callable queries cannot be
        written and are skipped. A query that is just a name is written
        bare, so it reads back as a name.

        Returns:
            Number of queries written
        """
        data = {}
        for name in self.list():
            entry = self._queries[name]
            if callable(entry.query):
                logger.warning(f"Skipping callable saved query {name!r}")
                continue
            data[str(name)] = {"description": entry.docstring, "query": query_text(entry.query)}

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=True)
        return len(data)

    def __contains__(self, name: Any) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._queries)
