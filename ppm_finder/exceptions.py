"""
Exceptions for the tool finder engine.

Every error raised by the engine derives from FinderError so callers can
catch the whole family at once, or a single failure mode when they need to.
All errors are raised before any state change, so a caught error never
leaves a half-applied step behind.
"""


class FinderError(Exception):
    """
    Base exception for tool finder failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ValidationError(FinderError):
    """
    Input is outside its allowed domain.

    Raised for out-of-range weights and ratings, malformed filter
    conditions, and answers that do not belong to the current question.
    """


class ConfigError(FinderError):
    """
    Static configuration is inconsistent.

    Raised when a question table references an unknown criterion or
    question, or when engine settings are invalid. Not recoverable at
    runtime; the configuration has to be fixed.

    Attributes:
        source: Where the bad configuration came from (file path or name)
    """

    def __init__(self, message: str, source: str = None, details: dict = None):
        merged = dict(details or {})
        if source:
            merged["source"] = source
        super().__init__(message, merged)
        self.source = source


class NotFoundError(FinderError):
    """An operation referenced an identifier that does not exist."""


class UnknownToolError(NotFoundError):
    """
    Tool id is not present in the catalog.

    Attributes:
        tool_id: The id that was looked up
    """

    def __init__(self, tool_id: str):
        super().__init__(f"Unknown tool '{tool_id}'", {"tool_id": tool_id})
        self.tool_id = tool_id


class UnknownCriterionError(NotFoundError, ValidationError):
    """
    Criterion id is not present in the registry.

    Both a NotFoundError and a ValidationError: a weight update naming an
    unknown criterion is rejected input as much as a failed lookup.

    Attributes:
        criterion_id: The id that was looked up
    """

    def __init__(self, criterion_id: str):
        super().__init__(
            f"Unknown criterion '{criterion_id}'", {"criterion_id": criterion_id}
        )
        self.criterion_id = criterion_id


class InvalidOperation(FinderError):
    """
    Operation is not allowed in the current state.

    Examples: comparing a tool that is not selected, removing a tool twice,
    answering a guided flow that is already complete.

    Attributes:
        operation: Name of the rejected operation
    """

    def __init__(self, message: str, operation: str = None, details: dict = None):
        merged = dict(details or {})
        if operation:
            merged["operation"] = operation
        super().__init__(message, merged)
        self.operation = operation
