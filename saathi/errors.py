"""Error taxonomy for the conversation engine.

Every error carries a stable ``code`` that the API layer maps to an HTTP
status and puts in the error payload.  The exception text is for logs;
users only ever see the localized apology chosen by the API layer.
"""

from __future__ import annotations


class SaathiError(Exception):
    """Base class for all engine errors."""

    code = "INTERNAL_ERROR"


class ValidationError(SaathiError):
    """Malformed input to the store (bad role, empty content, ...)."""

    code = "VALIDATION_ERROR"


class ConversationNotFound(SaathiError):
    """An explicit conversation id was supplied but does not exist."""

    code = "CONVERSATION_NOT_FOUND"

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class ModelUnavailable(SaathiError):
    """The LLM backend is unreachable, timed out, or returned malformed output."""

    code = "MODEL_UNAVAILABLE"


class ModelRateLimited(ModelUnavailable):
    """The LLM backend refused the call for rate limit or quota reasons."""

    code = "MODEL_RATE_LIMITED"


class UnknownTool(SaathiError):
    """The model requested a tool that is not in the registry."""

    code = "UNKNOWN_TOOL"

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Model requested unknown tool: {tool_name!r}")


class PersistenceError(SaathiError):
    """A store read or write failed at the backend level."""

    code = "PERSISTENCE_ERROR"
