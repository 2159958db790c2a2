"""
SQLAlchemy models for the roamql node store.

This module defines the knowledge-graph schema: files, nodes, the per-node
alias/tag/ref tables, and the directed links relation between nodes.
"""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import (
    Integer, String, Text, DateTime, ForeignKey, Index, JSON
)
from sqlalchemy.orm import (
    DeclarativeBase, relationship, Mapped, mapped_column
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class FileRecord(Base):
    """
    A source document that holds one or more nodes.

    Attributes:
        file: Absolute path of the document (primary key)
        title: Document-level title
        hash: Content hash recorded at last sync
        atime: Last access time
        mtime: Last modification time
    """
    __tablename__ = 'files'

    file: Mapped[str] = mapped_column(String(1024), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    atime: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    mtime: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    nodes: Mapped[List["NodeRecord"]] = relationship(
        "NodeRecord",
        back_populates="file_record",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<FileRecord(file='{self.file}')>"


class NodeRecord(Base):
    """
    A node in the knowledge graph (a file-level node or a heading).

    Attributes:
        id: Opaque unique identifier
        file: Owning document
        level: Outline level (0 for file-level nodes)
        pos: Byte offset of the node within the document
        todo: TODO keyword, if any
        priority: Priority cookie, if any
        scheduled: SCHEDULED timestamp
        deadline: DEADLINE timestamp
        title: Node title
        properties: Ordered property drawer
        olp: Outline path of ancestor headings
    """
    __tablename__ = 'nodes'

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    file: Mapped[str] = mapped_column(
        String(1024),
        ForeignKey('files.file', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pos: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    todo: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    priority: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)
    scheduled: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    properties: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, default=dict)
    olp: Mapped[Optional[list]] = mapped_column(JSON, nullable=True, default=list)

    file_record: Mapped["FileRecord"] = relationship(
        "FileRecord",
        back_populates="nodes",
        lazy="joined"
    )
    aliases: Mapped[List["AliasRecord"]] = relationship(
        "AliasRecord",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    tags: Mapped[List["TagRecord"]] = relationship(
        "TagRecord",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    refs: Mapped[List["RefRecord"]] = relationship(
        "RefRecord",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        Index('ix_nodes_title', 'title'),
    )

    def __repr__(self) -> str:
        return f"<NodeRecord(id='{self.id}', title='{self.title}')>"


class AliasRecord(Base):
    """Alternative title of a node."""
    __tablename__ = 'aliases'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    node_id: Mapped[str] = mapped_column(
        String(128), ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    alias: Mapped[str] = mapped_column(String(512), nullable=False)


class TagRecord(Base):
    """Tag attached to a node (inherited tags are stored explicitly)."""
    __tablename__ = 'tags'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    node_id: Mapped[str] = mapped_column(
        String(128), ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(128), nullable=False, index=True)


class RefRecord(Base):
    """Citation key or URL a node stands for."""
    __tablename__ = 'refs'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    node_id: Mapped[str] = mapped_column(
        String(128), ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    ref: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)


class LinkRecord(Base):
    """
    Directed edge between nodes.

    ``dest`` is not a foreign key: links of type "https", "file" and so on
    point at targets that are not nodes.
    """
    __tablename__ = 'links'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(
        String(128), ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False
    )
    dest: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="id")
    properties: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, default=dict)

    __table_args__ = (
        Index('ix_links_source', 'source'),
        Index('ix_links_dest', 'dest'),
    )

    def __repr__(self) -> str:
        return f"<LinkRecord({self.source} -> {self.dest}, type='{self.type}')>"
