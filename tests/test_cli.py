"""
Tests for the roamql command-line interface.

Each test runs main() against the sample graph database and checks the
printed output.
"""
import json

import pytest
import yaml

import roamql.query.engine
from roamql.cli import main


@pytest.fixture
def db_path(graph):
    return str(graph.path)


class TestQueryCommand:
    """Test `roamql query`."""

    def test_ids_output(self, db_path, capsys):
        main(["--db", db_path, "-o", "ids", "query", '(tags "home")', "--sort", "title"])
        assert capsys.readouterr().out.split() == ["b2", "b3", "b1"]

    def test_json_output(self, db_path, capsys):
        main(["--db", db_path, "-o", "json", "query", '(todo "DONE")'])
        data = json.loads(capsys.readouterr().out)
        assert [d["id"] for d in data] == ["b3"]
        assert data[0]["title"] == "Read book"

    def test_limit(self, db_path, capsys):
        main(["--db", db_path, "-o", "ids", "query", '(tags "home")', "--sort", "title", "--limit", "1"])
        assert capsys.readouterr().out.split() == ["b2"]

    def test_page_size_is_default_limit(self, db_path, monkeypatch, capsys):
        monkeypatch.setenv("ROAMQL_PAGE_SIZE", "2")
        main(["--db", db_path, "-o", "ids", "query", '(tags "home")', "--sort", "title"])
        assert capsys.readouterr().out.split() == ["b2", "b3"]

    def test_limit_zero_shows_everything(self, db_path, monkeypatch, capsys):
        monkeypatch.setenv("ROAMQL_PAGE_SIZE", "1")
        main(["--db", db_path, "-o", "ids", "query", '(tags "home")', "--limit", "0"])
        assert set(capsys.readouterr().out.split()) == {"b1", "b2", "b3"}

    def test_table_output(self, db_path, capsys):
        main(["--db", db_path, "query", '(backlink-to (title "Project Alpha" t))'])
        out = capsys.readouterr().out
        assert "Buy groceries" in out
        assert "Write report" in out

    def test_invalid_query_exits_1(self, db_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db_path, "query", "(and (todo"])
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().out

    def test_unknown_sort_exits_1(self, db_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db_path, "query", '(todo "TODO")', "--sort", "bogus"])
        assert exc_info.value.code == 1


class TestConfiguration:
    """Configuration problems are reported like any other error."""

    def test_invalid_output_format_in_config(self, db_path, tmp_path, capsys):
        config_file = tmp_path / "bad.toml"
        config_file.write_text('output_format = "xml"\n')

        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db_path, "--config", str(config_file), "db", "info"])
        assert exc_info.value.code == 1
        assert "output_format" in capsys.readouterr().out

    def test_unknown_default_sort(self, db_path, monkeypatch, capsys):
        monkeypatch.setenv("ROAMQL_DEFAULT_SORT", "bogus")

        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db_path, "query", '(todo "TODO")'])
        assert exc_info.value.code == 1
        assert "bogus" in capsys.readouterr().out

    def test_default_sort_from_config(self, db_path, monkeypatch, capsys):
        monkeypatch.setenv("ROAMQL_DEFAULT_SORT", "title")
        main(["--db", db_path, "-o", "ids", "query", '(tags "home")'])
        assert capsys.readouterr().out.split() == ["b2", "b3", "b1"]


class TestSavedCommand:
    """Test `roamql saved`."""

    def test_add_show_and_list(self, db_path, tmp_path, monkeypatch, capsys):
        queries = tmp_path / "queries.yaml"
        monkeypatch.setenv("ROAMQL_SAVED_QUERIES_FILE", str(queries))

        main(["--db", db_path, "saved", "add", "weekly", '(and (todo "TODO") (tags "work"))',
              "-d", "Open work"])
        assert "weekly" in yaml.safe_load(queries.read_text())
        capsys.readouterr()

        main(["--db", db_path, "-o", "ids", "saved", "show", "weekly"])
        assert set(capsys.readouterr().out.split()) == {"a2", "b1"}

        main(["--db", db_path, "-o", "json", "saved", "list"])
        entries = json.loads(capsys.readouterr().out)
        assert entries[0]["name"] == "weekly"
        assert entries[0]["docstring"] == "Open work"

    def test_add_query_using_later_saved_query(self, db_path, tmp_path, monkeypatch, capsys):
        """A file holding cross-referencing saved queries loads on the next run."""
        queries = tmp_path / "queries.yaml"
        monkeypatch.setenv("ROAMQL_SAVED_QUERIES_FILE", str(queries))

        main(["--db", db_path, "saved", "add", "weekly", '(tags "work")'])
        main(["--db", db_path, "saved", "add", "a-open", '(and weekly (todo "TODO"))'])
        capsys.readouterr()

        monkeypatch.setattr(roamql.query.engine, "_engine", None)
        main(["--db", db_path, "-o", "ids", "saved", "show", "a-open"])
        assert set(capsys.readouterr().out.split()) == {"a2", "b1"}

    def test_show_unknown(self, db_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db_path, "saved", "show", "missing"])
        assert exc_info.value.code == 1


class TestVocabularyCommands:
    """Test `roamql predicates|expansions|sorts`."""

    @pytest.mark.parametrize("command,expected", [
        ("predicates", "title"),
        ("expansions", "backlink-to"),
        ("sorts", "file-mtime"),
    ])
    def test_json_listing(self, db_path, capsys, command, expected):
        main(["--db", db_path, "-o", "json", command])
        names = [e["name"] for e in json.loads(capsys.readouterr().out)]
        assert expected in names


class TestDbCommand:
    """Test `roamql db info`."""

    def test_info(self, db_path, capsys):
        main(["--db", db_path, "-o", "json", "db", "info"])
        info = json.loads(capsys.readouterr().out)
        assert info["nodes"] == 6
        assert info["links"] == 7
