"""
Built-in predicates.

Each predicate pairs an extractor (Node -> value or None) with a comparator
(value, *args -> bool). The resolver never calls the comparator when the
extractor returns None, so an absent attribute always excludes the node.

String predicates share one matching policy driven by two optional flags:

    (title "Project")            case-insensitive substring
    (title "Project Alpha" t)    exact equality
    (title "^Proj.*a$" nil t)    regular expression search
"""
import operator
import re
from typing import Any, Callable, Dict, Mapping

from roamql.dates import to_epoch
from roamql.node import Node
from roamql.query.registry import PredicateRegistry

COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "=": operator.eq,
}


def string_match(value: Any, term: Any, exact: Any = None, use_regexp: Any = None) -> bool:
    """Match ``value`` against ``term`` under the exact/regexp/substring policy."""
    if term is None:
        return False
    value, term = str(value), str(term)
    if exact:
        return value == term
    if use_regexp:
        return re.search(term, value) is not None
    return term.lower() in value.lower()


def _comparison(token: Any) -> Callable[[Any, Any], bool]:
    try:
        return COMPARISONS[str(token)]
    except KeyError:
        raise ValueError(f"Invalid comparison {token!r}, expected one of {sorted(COMPARISONS)}")


def _nonempty(values):
    return values or None


def compare_time(timestamp: Any, comparison: Any, expression: Any) -> bool:
    """Compare a node timestamp with a human date expression as epoch seconds."""
    compare = _comparison(comparison)
    return compare(to_epoch(timestamp), to_epoch(expression))


def compare_level(level: int, *args: Any) -> bool:
    """(level n) or (level cmp n)."""
    if len(args) == 1:
        return level == int(args[0])
    if len(args) == 2:
        return _comparison(args[0])(level, int(args[1]))
    raise TypeError(f"level takes 1 or 2 arguments, got {len(args)}")


def match_any(values, term: Any, exact: Any = None, use_regexp: Any = None) -> bool:
    return any(string_match(v, term, exact, use_regexp) for v in values)


def has_tags(tags, *wanted: Any) -> bool:
    return all(str(t) in tags for t in wanted)


def match_property(
    properties: Mapping[str, str],
    key: Any,
    value: Any = None,
    exact: Any = None,
    use_regexp: Any = None,
) -> bool:
    """Property ``key`` is present (keys compare case-insensitively) and matches ``value``."""
    wanted = str(key).upper()
    for prop, actual in properties.items():
        if prop.upper() == wanted:
            return value is None or string_match(actual, value, exact, use_regexp)
    return False


def call_function(node: Node, func: Callable[[Node], Any]) -> bool:
    return bool(func(node))


def register_builtin_predicates(registry: PredicateRegistry) -> None:
    """Register the built-in predicate vocabulary."""
    registry.register(
        "id", lambda n: n.id, lambda value, target: value == str(target),
        "Node id equals ID.",
    )

    string_fields = [
        ("file", lambda n: n.file, "File path matches TERM."),
        ("file-title", lambda n: n.file_title, "File title matches TERM."),
        ("title", lambda n: n.title, "Title matches TERM."),
        ("todo", lambda n: n.todo, "TODO keyword matches TERM."),
        ("priority", lambda n: n.priority, "Priority matches TERM."),
    ]
    for name, extractor, doc in string_fields:
        registry.register(
            name, extractor, string_match,
            f"{doc} Optional EXACT and USE-REGEXP flags.",
        )

    registry.register(
        "aliases", lambda n: _nonempty(n.aliases), match_any,
        "Any alias matches TERM. Optional EXACT and USE-REGEXP flags.",
    )
    registry.register(
        "refs", lambda n: _nonempty(n.refs), match_any,
        "Any ref matches TERM. Optional EXACT and USE-REGEXP flags.",
    )
    registry.register(
        "tags", lambda n: _nonempty(n.tags), has_tags,
        "Node has all of the given TAGS.",
    )
    registry.register(
        "properties", lambda n: _nonempty(n.properties), match_property,
        "Property KEY exists and matches VALUE. Optional EXACT and USE-REGEXP flags.",
    )
    registry.register(
        "level", lambda n: n.level, compare_level,
        "Outline level equals N, or compares with N via CMP (< > = <= >=).",
    )

    time_fields = [
        ("scheduled", lambda n: n.scheduled),
        ("deadline", lambda n: n.deadline),
        ("file-atime", lambda n: n.file_atime),
        ("file-mtime", lambda n: n.file_mtime),
    ]
    for name, extractor in time_fields:
        registry.register(
            name, extractor, compare_time,
            f"{name} timestamp compares with a date expression: ({name} < \"2024-01-01\").",
        )

    registry.register(
        "funcall", lambda n: n, call_function,
        "FUNC called with the node returns true.",
    )
