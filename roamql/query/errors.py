"""
Errors raised while classifying and resolving queries.

Every error surfaces synchronously to the caller of resolution. Nothing in
roamql retries or returns a partial result.
"""


class QueryError(Exception):
    """Base class for roamql query errors."""
    pass


class ClassificationError(QueryError):
    """Input matches none of the recognised source-or-query shapes."""

    def __init__(self, value, reason: str = "invalid source-or-query"):
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {value!r}")


class UnknownSortError(QueryError):
    """Sort specifier is neither a function nor a registered sort name."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Unknown sort: {name!r}")


class InvalidCombineModeError(QueryError):
    """Link expansion combine argument is neither :and nor :or."""

    def __init__(self, mode):
        self.mode = mode
        super().__init__(f"Invalid combine mode {mode!r}, expected :and or :or")


class CallableContractViolation(QueryError):
    """A callable leaf returned something other than a node sequence."""

    def __init__(self, func, returned):
        self.func = func
        self.returned = returned
        super().__init__(
            f"{getattr(func, '__name__', func)!s} returned {type(returned).__name__}, "
            "expected a sequence of nodes"
        )


class AdapterError(QueryError):
    """The node store failed to run a query. The original error is chained."""
    pass


class ReservedNameError(ValueError):
    """Attempt to register a predicate or expansion under a reserved keyword."""
    pass


class SavedQueryError(QueryError):
    """Error loading or validating saved query definitions."""
    pass
