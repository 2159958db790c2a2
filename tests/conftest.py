import os
from datetime import datetime

import pytest

import roamql.config
import roamql.db
import roamql.query.engine
from roamql.db import NodeStore
from roamql.query.engine import QueryEngine


@pytest.fixture(autouse=True)
def isolated_globals(monkeypatch, tmp_path):
    """Keep tests away from the user's config and the module-level singletons."""
    for key in list(os.environ.keys()):
        if key.startswith("ROAMQL_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(roamql.config, "_config", None)
    monkeypatch.setattr(roamql.db, "_store", None)
    monkeypatch.setattr(roamql.query.engine, "_engine", None)
    yield


@pytest.fixture
def store(tmp_path):
    """Empty node store in a temporary SQLite file."""
    return NodeStore(path=str(tmp_path / "roam.db"))


@pytest.fixture
def graph(store):
    """
    Small knowledge graph.

    Nodes (level, todo, tags):
        a1  Project Alpha           0  -     work
        a2  Project Alpha Review    1  TODO  work
        b1  Write report            1  TODO  work, home
        b2  Buy groceries           1  TODO  home
        b3  Read book               2  DONE  home
        c1  Archive note            0  -     archive

    Links (source -> dest):
        a2 -> a1, b1 -> a1, b2 -> a1
        b1 -> a2, b2 -> a2
        b1 -> c1
        b3 -> c1 (type "file")
    """
    store.add_file("/notes/projects.org", title="Projects", mtime=datetime(2024, 3, 1))
    store.add_file("/notes/inbox.org", title="Inbox", mtime=datetime(2024, 1, 1))

    store.add_node("a1", "Project Alpha", file="/notes/projects.org", level=0,
                   tags=["work"], aliases=["Alpha"])
    store.add_node("a2", "Project Alpha Review", file="/notes/projects.org", level=1, pos=120,
                   todo="TODO", priority="A", scheduled=datetime(2024, 2, 10),
                   tags=["work"], olp=["Project Alpha"])
    store.add_node("b1", "Write report", file="/notes/inbox.org", level=1,
                   todo="TODO", deadline=datetime(2024, 1, 15), tags=["work", "home"])
    store.add_node("b2", "Buy groceries", file="/notes/inbox.org", level=1, pos=40,
                   todo="TODO", priority="B", tags=["home"])
    store.add_node("b3", "Read book", file="/notes/inbox.org", level=2, pos=80,
                   todo="DONE", tags=["home"])
    store.add_node("c1", "Archive note", file="/notes/inbox.org", level=0,
                   tags=["archive"], properties={"CATEGORY": "old"},
                   refs=["https://example.com/archive"])

    store.add_link("a2", "a1")
    store.add_link("b1", "a1")
    store.add_link("b2", "a1")
    store.add_link("b1", "a2")
    store.add_link("b2", "a2")
    store.add_link("b1", "c1")
    store.add_link("b3", "c1", type="file")
    return store


@pytest.fixture
def engine(graph):
    """Query engine with the built-in vocabulary over the sample graph."""
    return QueryEngine(graph)
