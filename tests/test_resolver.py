"""
Tests for query resolution.

Covers the set algebra of and/or/not, deduplication, raw store queries
(including the unknown-head fallback), callables and saved queries.
"""
import pytest

from roamql.node import Node
from roamql.query.core import NodeList
from roamql.query.errors import (
    AdapterError,
    CallableContractViolation,
    ClassificationError,
)

ALL = {"a1", "a2", "b1", "b2", "b3", "c1"}


def ids(nodes):
    return {n.id for n in nodes}


class TestSetAlgebra:
    """and/or/not behave as intersection, union and complement."""

    def test_or_is_union(self, engine):
        assert ids(engine.nodes('(or (todo "DONE") (tags "archive"))')) == {"b3", "c1"}

    def test_and_is_intersection(self, engine):
        assert ids(engine.nodes('(and (tags "home") (todo "TODO"))')) == {"b1", "b2"}

    def test_not_is_complement(self, engine):
        assert ids(engine.nodes('(not (tags "home"))')) == {"a1", "a2", "c1"}

    def test_double_negation(self, engine):
        assert ids(engine.nodes('(not (not (tags "work")))')) == ids(engine.nodes('(tags "work")'))

    def test_query_and_its_complement(self, engine):
        q = '(todo "TODO")'
        assert engine.nodes(f"(and {q} (not {q}))") == []
        assert ids(engine.nodes(f"(or {q} (not {q}))")) == ALL

    def test_de_morgan(self, engine):
        left = engine.nodes('(not (or (tags "work") (tags "home")))')
        right = engine.nodes('(and (not (tags "work")) (not (tags "home")))')
        assert ids(left) == ids(right) == {"c1"}

    def test_empty_combinators(self, engine):
        assert engine.nodes("(and)") == []
        assert engine.nodes("(or)") == []

    def test_single_operand(self, engine):
        assert ids(engine.nodes('(and (todo "DONE"))')) == {"b3"}


class TestDeduplication:
    """Results never contain the same node twice."""

    def test_or_of_overlapping_queries(self, engine):
        result = engine.nodes('(or (tags "work") (tags "home") (todo "TODO"))')
        assert len(result) == len(ids(result)) == 5

    def test_node_list_duplicates(self, engine):
        node = Node("a1")
        assert engine.nodes([node, node, Node("b1")]) == [node, Node("b1")]

    def test_raw_query_duplicate_rows(self, engine):
        result = engine.nodes(["sql", "SELECT source FROM links ORDER BY source"])
        assert [n.id for n in result] == ["a2", "b1", "b2", "b3"]


class TestRawQueries:
    """Raw store queries and the unknown-head fallback."""

    def test_full_select(self, engine):
        result = engine.nodes(["sql", "SELECT source FROM links WHERE dest = ?", "a1"])
        assert ids(result) == {"a2", "b1", "b2"}

    def test_where_fragment(self, engine):
        assert ids(engine.nodes(["sql", "todo = ?", "DONE"])) == {"b3"}

    def test_unknown_ids_dropped(self, engine):
        result = engine.nodes(["sql", "SELECT dest FROM links WHERE type = 'file'"])
        assert ids(result) == {"c1"}
        result = engine.nodes(["sql", "SELECT 'ghost'"])
        assert result == []

    def test_raw_failure_surfaces_adapter_error(self, engine):
        with pytest.raises(AdapterError):
            engine.nodes(["sql", "SELECT nope FROM nowhere"])

    def test_fallback_success(self, engine):
        assert ids(engine.nodes(["level = 1"])) == {"a2", "b1", "b2"}

    def test_fallback_failure_is_classification_error(self, engine):
        with pytest.raises(ClassificationError) as exc_info:
            engine.nodes(["no-such-thing", 1])
        assert isinstance(exc_info.value.__cause__, AdapterError)


class TestCallables:
    """Callable leaves."""

    def test_callable_returning_nodes(self, engine, graph):
        def pinned():
            return [graph.get_node("b2")]
        assert ids(engine.nodes(pinned)) == {"b2"}

    def test_callable_returning_single_node(self, engine):
        assert ids(engine.nodes(lambda: Node("c1"))) == {"c1"}

    def test_callable_returning_node_list(self, engine):
        assert ids(engine.nodes(lambda: NodeList((Node("a1"),)))) == {"a1"}

    def test_callable_inside_combinator(self, engine, graph):
        def homework():
            return graph.get_nodes(["b1", "b2", "b3"])
        assert ids(engine.nodes(["and", homework, ["todo", "TODO"]])) == {"b1", "b2"}

    @pytest.mark.parametrize("returned", ["a1", 42, None, ["a1"]])
    def test_contract_violation(self, engine, returned):
        with pytest.raises(CallableContractViolation):
            engine.nodes(lambda: returned)


class TestSavedResolution:
    """Saved queries resolve to their stored query."""

    def test_string_and_symbol_names_agree(self, engine):
        from roamql.query.sexp import Symbol

        engine.add_saved_query("weekly", "Open work", '(and (todo "TODO") (tags "work"))')

        by_string = engine.nodes("weekly")
        by_symbol = engine.nodes(Symbol("weekly"))
        assert ids(by_string) == ids(by_symbol) == {"a2", "b1"}

    def test_saved_query_in_combinator(self, engine):
        engine.add_saved_query("home", "", '(tags "home")')
        assert ids(engine.nodes('(and home (todo "TODO"))')) == {"b1", "b2"}


class TestResolveApi:
    """engine.resolve returns an id -> node mapping."""

    def test_resolve_mapping(self, engine):
        resolved = engine.resolve('(todo "DONE")')
        assert list(resolved) == ["b3"]
        assert resolved["b3"].title == "Read book"

    def test_resolve_returns_copy(self, engine):
        engine.resolve('(todo "DONE")').clear()
        assert "b3" in engine.resolve('(todo "DONE")')
