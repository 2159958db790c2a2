"""
Bookmarked queries.

A bookmark remembers a query under a name so it can be reopened later. The
classifier consults bookmarks after saved queries, so a bookmark name works
anywhere a source-or-query is accepted.

Bookmarks persist to a YAML file:

    inbox:
      query: (and (todo "TODO") (not (tags "someday")))
      description: Everything open
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from roamql.query.sexp import dumps

logger = logging.getLogger(__name__)


class QueryBookmarks:
    """
    Name -> query bookmarks, optionally backed by a YAML file.

    Example:
        bookmarks = QueryBookmarks("~/.config/roamql/bookmarks.yaml")
        bookmarks.add("inbox", '(todo "TODO")')
        bookmarks.get_query("inbox")  # '(todo "TODO")'
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path).expanduser() if path else None
        self._bookmarks: Dict[str, Dict[str, Any]] = {}
        if self.path and self.path.exists():
            self.load()

    def load(self) -> int:
        """Reload bookmarks from the backing file."""
        with open(self.path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Bookmarks file must contain a dictionary, got {type(data)}")

        self._bookmarks = {}
        for name, entry in data.items():
            if isinstance(entry, dict):
                self._bookmarks[str(name)] = {
                    "query": entry.get("query"),
                    "description": entry.get("description", ""),
                }
            else:
                self._bookmarks[str(name)] = {"query": entry, "description": ""}

        logger.debug(f"Loaded {len(self._bookmarks)} bookmarks from {self.path}")
        return len(self._bookmarks)

    def save(self) -> None:
        """Write bookmarks to the backing file."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(self._bookmarks, f, sort_keys=True)

    def add(self, name: str, query: Any, description: str = "") -> None:
        """Bookmark a query. List-form queries are stored in printed form."""
        if not isinstance(query, str):
            query = dumps(query)
        self._bookmarks[str(name)] = {"query": query, "description": description}
        self.save()

    def remove(self, name: str) -> bool:
        existed = self._bookmarks.pop(str(name), None) is not None
        if existed:
            self.save()
        return existed

    def get_query(self, name: str) -> Any:
        """Stored query for ``name``, or None."""
        entry = self._bookmarks.get(str(name))
        return entry["query"] if entry else None

    def list(self) -> List[str]:
        return sorted(self._bookmarks)

    def __contains__(self, name: Any) -> bool:
        return str(name) in self._bookmarks

    def __len__(self) -> int:
        return len(self._bookmarks)
