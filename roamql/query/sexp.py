"""
Reader and printer for the textual query grammar.

Queries typed interactively or stored in files use parenthesized prefix
notation:

    (and (todo "TODO") (tags "a" "b"))
    (backlink-to (id "abc123") :combine :or)
    (not (title "draft" t))

Reading rules:
- ( ... ) -> list
- "..." -> str (backslash escapes \\" \\\\ \\n \\t)
- integers and floats -> int / float
- nil -> None, t -> True
- anything else -> Symbol (keywords such as :and keep their colon)
- a leading ' quote is ignored
- ; starts a comment running to end of line
"""
import re
from typing import Any, Iterator, List, Tuple

from roamql.query.errors import ClassificationError


class Symbol(str):
    """
    An interned name.

    Symbols compare and hash equal to the plain string with the same text,
    so registry lookups accept either form.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


def intern(name: str) -> Symbol:
    """Intern a string name into the symbol key space."""
    if isinstance(name, Symbol):
        return name
    return Symbol(name)


_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+|;[^\n]*)
  | (?P<open>\()
  | (?P<close>\))
  | (?P<quote>')
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<atom>[^\s()";']+)
""", re.VERBOSE)

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")

_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def _tokenize(text: str) -> Iterator[Tuple[str, str]]:
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise ClassificationError(text, f"unreadable input at offset {pos}")
        kind = match.lastgroup
        if kind != "ws":
            yield kind, match.group(kind)
        pos = match.end()


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _atom(token: str) -> Any:
    if token == "nil":
        return None
    if token == "t":
        return True
    if _INT_RE.match(token):
        return int(token)
    if _FLOAT_RE.match(token):
        return float(token)
    return Symbol(token)


def read_all(text: str) -> List[Any]:
    """Read every top-level form in ``text``."""
    stack: List[List[Any]] = [[]]
    for kind, token in _tokenize(text):
        if kind == "open":
            stack.append([])
        elif kind == "close":
            if len(stack) == 1:
                raise ClassificationError(text, "unbalanced ')'")
            finished = stack.pop()
            stack[-1].append(finished)
        elif kind == "quote":
            continue
        elif kind == "string":
            stack[-1].append(_unescape(token[1:-1]))
        else:
            stack[-1].append(_atom(token))

    if len(stack) != 1:
        raise ClassificationError(text, "unbalanced '('")
    return stack[0]


def read(text: str) -> Any:
    """
    Read exactly one form.

    Raises:
        ClassificationError: If the text is empty, unbalanced or holds
            more than one form
    """
    forms = read_all(text)
    if len(forms) != 1:
        raise ClassificationError(text, f"expected one form, found {len(forms)}")
    return forms[0]


def dumps(value: Any) -> str:
    """Print a value in the textual grammar."""
    if value is None or value is False:
        return "nil"
    if value is True:
        return "t"
    if isinstance(value, Symbol):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        parts = [dumps(v) for v in value]
        # Plain-string heads ("and", "title") print as symbols
        if value and isinstance(value[0], str) and re.fullmatch(r"[^\s()\";']+", value[0]):
            parts[0] = value[0]
        return "(" + " ".join(parts) + ")"
    if hasattr(value, "to_sexp"):
        return dumps(value.to_sexp())
    return f"#<{value!r}>"
