"""Conversation store: conversations and their append-only message log.

The store is an injected collaborator.  ``InMemoryConversationStore`` is
the default (and the test double); ``saathi.mongo.MongoConversationStore``
persists to MongoDB when ``MONGO_URI`` is configured.

Ordering contract
-----------------
Messages are totally ordered per conversation by ``seq``, a
store-assigned, strictly increasing counter.  Timestamps never go
backwards within a conversation, but they may tie, and history is read
back in ``seq`` order regardless of the wall clock.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from saathi.config import DEFAULT_USER_ID
from saathi.errors import ConversationNotFound, ValidationError

TITLE_MAX_CHARS = 30


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Conversation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str = DEFAULT_USER_ID
    title: str = "New Chat"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversation_id: str
    role: Role
    content: str
    timestamp: datetime
    seq: int = 0


def validate_message(role: Role | str, content: str) -> Role:
    """Coerce *role* and reject blank content.  Raises ``ValidationError``."""
    try:
        parsed = Role(role)
    except ValueError as exc:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Invalid role {role!r}; expected one of: {allowed}") from exc
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content must be a non-empty string")
    return parsed


def make_title(first_message: str | None) -> str:
    if first_message and first_message.strip():
        return first_message.strip()[:TITLE_MAX_CHARS]
    return "New Chat"


class ConversationStore(ABC):
    """Persistence interface for conversations and messages."""

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Return the conversation or ``None``."""

    @abstractmethod
    def create_conversation(
        self, user_id: str | None = None, title: str | None = None,
    ) -> Conversation:
        """Create and persist a new conversation."""

    @abstractmethod
    def append_message(
        self, conversation_id: str, role: Role | str, content: str,
    ) -> Message:
        """Persist a new message with a server-assigned timestamp."""

    @abstractmethod
    def load_history(self, conversation_id: str, limit: int) -> list[Message]:
        """Return up to *limit* most recent messages, oldest first."""

    @abstractmethod
    def delete_conversation(self, conversation_id: str) -> None:
        """Remove a conversation and its messages; unknown ids are ignored."""

    def get_or_create_conversation(
        self,
        conversation_id: str | None = None,
        user_id: str | None = None,
        *,
        title: str | None = None,
    ) -> Conversation:
        """Return the existing conversation, or create one when no id is given.

        An explicit id that is not in the store raises
        ``ConversationNotFound``; it is never silently replaced.
        """
        if conversation_id:
            conversation = self.get_conversation(conversation_id)
            if conversation is None:
                raise ConversationNotFound(conversation_id)
            return conversation
        return self.create_conversation(user_id=user_id, title=title)


class InMemoryConversationStore(ConversationStore):
    """Thread-safe, process-local store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._seq = itertools.count(1)

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def create_conversation(
        self, user_id: str | None = None, title: str | None = None,
    ) -> Conversation:
        conversation = Conversation(
            id=uuid.uuid4().hex,
            user_id=user_id or DEFAULT_USER_ID,
            title=make_title(title),
        )
        with self._lock:
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
        return conversation

    def append_message(
        self, conversation_id: str, role: Role | str, content: str,
    ) -> Message:
        parsed_role = validate_message(role, content)
        with self._lock:
            if conversation_id not in self._conversations:
                raise ConversationNotFound(conversation_id)
            log = self._messages[conversation_id]
            timestamp = datetime.now(UTC)
            # Clock can stand still (or step back); never let it reorder the log
            if log and timestamp < log[-1].timestamp:
                timestamp = log[-1].timestamp
            message = Message(
                conversation_id=conversation_id,
                role=parsed_role,
                content=content,
                timestamp=timestamp,
                seq=next(self._seq),
            )
            log.append(message)
        return message

    def delete_conversation(self, conversation_id: str) -> None:
        with self._lock:
            self._conversations.pop(conversation_id, None)
            self._messages.pop(conversation_id, None)

    def load_history(self, conversation_id: str, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        with self._lock:
            if conversation_id not in self._conversations:
                raise ConversationNotFound(conversation_id)
            return list(self._messages[conversation_id][-limit:])
