"""
Errors that abort a home search run.

Tool failures the model can reason about (a location that cannot be geocoded,
a search backend that is down) are returned to it as {"error": ...} tool
results instead. These exceptions cover the cases where the conversation
itself is broken.
"""

from typing import Any


class OrchestrationError(Exception):
    """Base class for fatal home search errors.

    tool_invocations holds the invocation log collected before the failure.
    """

    def __init__(self, message: str, tool_invocations: list[Any] | None = None):
        super().__init__(message)
        self.tool_invocations = list(tool_invocations or [])


class UnknownToolError(OrchestrationError):
    """The model requested a tool that is not registered."""


class MissingQueryError(OrchestrationError):
    """Search was requested before any `query` parameter was known."""


class MaxTurnsExceededError(OrchestrationError):
    """The model kept requesting tools past the configured turn ceiling."""


class MalformedToolCallError(OrchestrationError):
    """A tool call carried arguments that are not a valid JSON object."""
