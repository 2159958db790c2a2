"""Tests for result ordering."""
import pytest

from roamql.node import Node
from roamql.query.errors import UnknownSortError
from roamql.query.registry import SortRegistry
from roamql.query.sorts import before, order_nodes, register_builtin_sorts, resolve_sort


@pytest.fixture
def sorts():
    registry = SortRegistry()
    register_builtin_sorts(registry)
    return registry


class TestBefore:
    """Test key-based sort functions."""

    def test_ascending(self):
        by_level = before(lambda n: n.level)
        assert by_level(Node("a", level=0), Node("b", level=1))
        assert not by_level(Node("b", level=1), Node("a", level=0))

    def test_missing_keys_sort_last(self):
        by_todo = before(lambda n: n.todo)
        assert by_todo(Node("a", todo="TODO"), Node("b"))
        assert not by_todo(Node("b"), Node("a", todo="TODO"))
        assert not by_todo(Node("b"), Node("c"))


class TestOrderNodes:
    """Test order_nodes."""

    def test_no_sort_keeps_input_order(self, sorts):
        nodes = [Node("z"), Node("a"), Node("m")]
        assert order_nodes(nodes, None, sorts) == nodes

    def test_named_sort(self, sorts):
        nodes = [Node("1", title="beta"), Node("2", title="Alpha"), Node("3", title="gamma")]
        assert [n.id for n in order_nodes(nodes, "title", sorts)] == ["2", "1", "3"]

    def test_function_sort(self, sorts):
        nodes = [Node("b"), Node("c"), Node("a")]
        result = order_nodes(nodes, lambda x, y: x.id > y.id, sorts)
        assert [n.id for n in result] == ["c", "b", "a"]

    def test_sort_is_stable(self, sorts):
        nodes = [Node("1", level=1), Node("2", level=0), Node("3", level=1), Node("4", level=0)]
        assert [n.id for n in order_nodes(nodes, "level", sorts)] == ["2", "4", "1", "3"]

    def test_unknown_sort(self, sorts):
        with pytest.raises(UnknownSortError):
            order_nodes([Node("a")], "no-such-sort", sorts)

    def test_resolve_sort(self, sorts):
        assert resolve_sort(None, sorts) is None
        assert resolve_sort("title", sorts) is sorts.get("title").function


class TestBuiltinSorts:
    """Built-in sorts over the sample graph."""

    def test_title(self, engine):
        result = engine.nodes('(tags "work")', sort="title")
        assert [n.id for n in result] == ["a1", "a2", "b1"]

    def test_title_reverse(self, engine):
        result = engine.nodes('(tags "work")', sort="title-reverse")
        assert [n.id for n in result] == ["b1", "a2", "a1"]

    def test_priority_missing_last(self, engine):
        result = engine.nodes('(todo "TODO")', sort="priority")
        assert [n.id for n in result][:2] == ["a2", "b2"]
        assert result[-1].id == "b1"

    def test_file_mtime_newest_first(self, engine):
        result = engine.nodes('(or (id "b3") (id "a1"))', sort="file-mtime")
        assert [n.id for n in result] == ["a1", "b3"]

    def test_registered_sort(self, engine):
        engine.register_sort("id-desc", lambda a, b: a.id > b.id, "Id, descending")
        result = engine.nodes('(tags "home")', sort="id-desc")
        assert [n.id for n in result] == ["b3", "b2", "b1"]

    def test_unknown_sort_name(self, engine):
        with pytest.raises(UnknownSortError):
            engine.nodes('(tags "home")', sort="bogus")
