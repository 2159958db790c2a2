"""
Immutable node values.

A Node is the read-only view of one knowledge-graph entity that predicates,
expansions and sort functions see. Identity is the node id: two nodes are
equal iff their ids are equal, whatever their other attributes say.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Optional, Tuple

if TYPE_CHECKING:
    from roamql.models import NodeRecord


@dataclass(frozen=True, eq=False)
class Node:
    """
    Read-only projection of a node row.

    Example:
        node = Node(id="abc123", title="Project Alpha", tags=frozenset({"work"}))
        node.title          # "Project Alpha"
        node == Node("abc123")  # True, equality is by id
    """
    id: str
    file: Optional[str] = None
    file_title: Optional[str] = None
    title: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    todo: Optional[str] = None
    priority: Optional[str] = None
    scheduled: Optional[datetime] = None
    deadline: Optional[datetime] = None
    file_atime: Optional[datetime] = None
    file_mtime: Optional[datetime] = None
    tags: FrozenSet[str] = frozenset()
    properties: Dict[str, str] = field(default_factory=dict)
    refs: Tuple[str, ...] = ()
    point: int = 1
    level: int = 0
    olp: Tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: "NodeRecord") -> "Node":
        """Build a node value from an ORM row with its relationships loaded."""
        file_record = record.file_record
        return cls(
            id=record.id,
            file=record.file,
            file_title=file_record.title if file_record else None,
            title=record.title,
            aliases=tuple(a.alias for a in record.aliases),
            todo=record.todo,
            priority=record.priority,
            scheduled=record.scheduled,
            deadline=record.deadline,
            file_atime=file_record.atime if file_record else None,
            file_mtime=file_record.mtime if file_record else None,
            tags=frozenset(t.tag for t in record.tags),
            properties=dict(record.properties or {}),
            refs=tuple(r.ref for r in record.refs),
            point=record.pos,
            level=record.level,
            olp=tuple(record.olp or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "file": self.file,
            "file_title": self.file_title,
            "title": self.title,
            "aliases": list(self.aliases),
            "todo": self.todo,
            "priority": self.priority,
            "scheduled": iso(self.scheduled),
            "deadline": iso(self.deadline),
            "file_atime": iso(self.file_atime),
            "file_mtime": iso(self.file_mtime),
            "tags": sorted(self.tags),
            "properties": dict(self.properties),
            "refs": list(self.refs),
            "point": self.point,
            "level": self.level,
            "olp": list(self.olp),
        }

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Node):
            return self.id == other.id
        return False

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, title={self.title!r})"
