"""Conversation orchestrator: one user message in, one persisted reply out.

Architecture:
  Each turn runs through a LangGraph ``StateGraph``:

    1. **persist_user**    — append the user message (aborts the turn on failure)
    2. **match_catalog**   — lexical match against the catalog snapshot
    3. **canned_reply**    — persist the matched service's canned response
    4. **model_call**      — history window + tool schemas → model
    5. **execute_tool**    — run the single requested tool, persist a tool message
    6. **model_continue**  — hand the tool result back for the final answer
    7. **final_reply**     — persist the final assistant message

  Routing:
    persist_user → match_catalog → (score > threshold?) → canned_reply → END
                                 → (otherwise)          → model_call
    model_call   → (text?)      → final_reply → END
                 → (tool call?) → execute_tool
    execute_tool → (success?)   → model_continue → final_reply → END
                 → (failure?)   → final_reply → END

  There is no edge from ``model_continue`` back to ``execute_tool``: a turn
  runs at most one tool, however the model behaves.

Concurrency:
  Steps 1-7 run under a lock keyed by conversation id, so overlapping
  requests for the same conversation cannot interleave their messages.
  Different conversations never wait on each other.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import NamedTuple

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from saathi import config
from saathi.catalog import InMemoryServiceRepository, ServiceRepository
from saathi.errors import ModelUnavailable, PersistenceError, UnknownTool
from saathi.gateway import ModelGateway, ModelResponse
from saathi.matcher import MatchResult, best_match
from saathi.store import (
    ConversationStore,
    InMemoryConversationStore,
    Message,
    Role,
    validate_message,
)
from saathi.tools import ToolRegistry, build_default_registry
from saathi.tools.base import ToolCallRequest, ToolResult

logger = logging.getLogger(__name__)

REFERENCE_LINE = "\n\nसंदर्भ संख्या (Reference ID): {reference_id}"


class TurnPhase(str, Enum):
    RECEIVED = "RECEIVED"
    MATCHING = "MATCHING"
    CANNED_REPLIED = "CANNED_REPLIED"
    MODEL_CALL = "MODEL_CALL"
    TOOL_REQUESTED = "TOOL_REQUESTED"
    TOOL_EXECUTED = "TOOL_EXECUTED"
    MODEL_CONTINUE = "MODEL_CONTINUE"
    REPLIED = "REPLIED"


class TurnState(TypedDict, total=False):
    """The state that flows through the turn graph (internal plumbing)."""

    conversation_id: str
    new_conversation: bool
    message: str
    phase: TurnPhase
    user_seq: int
    match: MatchResult
    model_response: ModelResponse
    tool_result: ToolResult
    reply: str


class TurnResult(NamedTuple):
    conversation_id: str
    reply: str
    phase: TurnPhase
    service_matched: str | None = None
    tool_used: str | None = None


class _ConversationLocks:
    """Reference-counted locks keyed by conversation id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


def tool_message_content(call: ToolCallRequest, result: ToolResult) -> str:
    """JSON body of the tool-role message persisted for a tool run."""
    return json.dumps(
        {
            "tool": call.tool_name,
            "arguments": call.arguments,
            "result": result.model_dump(by_alias=True),
        },
        ensure_ascii=False,
    )


class Orchestrator:
    """Sequences matcher, store, model gateway and tools for each turn."""

    def __init__(
        self,
        services: ServiceRepository,
        store: ConversationStore,
        gateway: ModelGateway,
        registry: ToolRegistry | None = None,
        *,
        threshold: float = config.SIMILARITY_THRESHOLD,
        history_limit: int = config.HISTORY_LIMIT,
        tools_enabled: bool = config.TOOL_CALLING_ENABLED,
    ):
        self.services = services
        self.store = store
        self.gateway = gateway
        self.registry = registry if registry is not None else build_default_registry(services)
        self.threshold = threshold
        self.history_limit = history_limit
        self.tools_enabled = tools_enabled
        self._locks = _ConversationLocks()
        self._graph = self._build_graph()

    # ── Public API ───────────────────────────────────────────────────

    def handle_message(
        self,
        message: str,
        conversation_id: str | None = None,
        user_id: str | None = None,
    ) -> TurnResult:
        """Run one full turn and return the persisted reply.

        Raises ``ValidationError``, ``ConversationNotFound``,
        ``PersistenceError``, ``ModelUnavailable`` or ``UnknownTool``.
        """
        validate_message(Role.USER, message)
        conversation = self.store.get_or_create_conversation(
            conversation_id, user_id, title=message,
        )

        with self._locks.hold(conversation.id):
            final: TurnState = self._graph.invoke(
                {
                    "conversation_id": conversation.id,
                    "new_conversation": not conversation_id,
                    "message": message,
                    "phase": TurnPhase.RECEIVED,
                }
            )

        match = final.get("match")
        response = final.get("model_response")
        return TurnResult(
            conversation_id=conversation.id,
            reply=final["reply"],
            phase=final["phase"],
            service_matched=(
                match.service.name
                if final["phase"] is TurnPhase.CANNED_REPLIED and match
                else None
            ),
            tool_used=response.tool_call.tool_name if response and response.tool_call else None,
        )

    def history(self, conversation_id: str, limit: int | None = None) -> list[Message]:
        return self.store.load_history(
            conversation_id, self.history_limit if limit is None else limit,
        )

    # ── Nodes ────────────────────────────────────────────────────────

    def _persist_user(self, state: TurnState) -> dict:
        try:
            stored = self.store.append_message(
                state["conversation_id"], Role.USER, state["message"],
            )
        except PersistenceError:
            if state.get("new_conversation"):
                self._discard_conversation(state["conversation_id"])
            raise
        return {"user_seq": stored.seq, "phase": TurnPhase.MATCHING}

    def _discard_conversation(self, conversation_id: str) -> None:
        # A conversation created for this turn must not outlive a failed first message
        try:
            self.store.delete_conversation(conversation_id)
        except PersistenceError:
            logger.exception("Could not remove empty conversation %s", conversation_id)
        else:
            logger.warning("Removed empty conversation %s after failed write", conversation_id)

    def _match(self, state: TurnState) -> dict:
        result = best_match(state["message"], self.services.snapshot())
        logger.debug(
            "Match for %s: %r score=%.3f",
            state["conversation_id"],
            result.service.name if result.service else None,
            result.score,
        )
        return {"match": result}

    def _canned_reply(self, state: TurnState) -> dict:
        service = state["match"].service
        self.store.append_message(state["conversation_id"], Role.ASSISTANT, service.response)
        logger.info("Canned reply from %r for %s", service.name, state["conversation_id"])
        return {"reply": service.response, "phase": TurnPhase.CANNED_REPLIED}

    def _history_window(self, conversation_id: str, user_seq: int) -> list[Message]:
        # The window is loaded after the current message was persisted; the
        # current message is passed to the model separately.
        window = self.store.load_history(conversation_id, self.history_limit + 1)
        return [m for m in window if m.seq != user_seq][-self.history_limit:]

    def _model_call(self, state: TurnState) -> dict:
        history = self._history_window(state["conversation_id"], state["user_seq"])
        tools = self.registry.model_schemas() if self.tools_enabled else []
        response = self.gateway.converse(history, state["message"], tools)
        if response.tool_call is not None:
            logger.info(
                "Model requested tool %s for %s",
                response.tool_call.tool_name, state["conversation_id"],
            )
            return {"model_response": response, "phase": TurnPhase.TOOL_REQUESTED}
        return {"model_response": response, "phase": TurnPhase.MODEL_CALL}

    def _execute_tool(self, state: TurnState) -> dict:
        call = state["model_response"].tool_call
        if call.tool_name not in self.registry:
            logger.error(
                "Model requested unregistered tool %r (known: %s)",
                call.tool_name, ", ".join(self.registry.names),
            )
            raise UnknownTool(call.tool_name)

        result = self.registry.execute(call.tool_name, call.arguments)
        self.store.append_message(
            state["conversation_id"], Role.TOOL, tool_message_content(call, result),
        )
        return {"tool_result": result, "phase": TurnPhase.TOOL_EXECUTED}

    def _model_continue(self, state: TurnState) -> dict:
        result = state["tool_result"]
        try:
            text = self.gateway.resume(state["model_response"].context, result)
        except ModelUnavailable:
            # Tool already ran; reply with its own message
            logger.warning(
                "Model unavailable after tool run for %s; replying with tool message",
                state["conversation_id"],
            )
            text = result.message
        if result.reference_id and result.reference_id not in text:
            text += REFERENCE_LINE.format(reference_id=result.reference_id)
        return {"reply": text, "phase": TurnPhase.MODEL_CONTINUE}

    def _reply(self, state: TurnState) -> dict:
        reply = state.get("reply")
        if reply is None:
            tool_result = state.get("tool_result")
            reply = tool_result.message if tool_result is not None else state["model_response"].text
        self.store.append_message(state["conversation_id"], Role.ASSISTANT, reply)
        return {"reply": reply, "phase": TurnPhase.REPLIED}

    # ── Conditional edges ────────────────────────────────────────────

    def _route_after_match(self, state: TurnState) -> str:
        if state["match"].accepted(self.threshold):
            return "canned_reply"
        return "model_call"

    @staticmethod
    def _route_after_model(state: TurnState) -> str:
        if state["model_response"].tool_call is not None:
            return "execute_tool"
        return "final_reply"

    @staticmethod
    def _route_after_tool(state: TurnState) -> str:
        if state["tool_result"].success:
            return "model_continue"
        return "final_reply"

    # ── Graph assembly ───────────────────────────────────────────────

    def _build_graph(self):
        graph = StateGraph(TurnState)

        graph.add_node("persist_user", self._persist_user)
        graph.add_node("match_catalog", self._match)
        graph.add_node("canned_reply", self._canned_reply)
        graph.add_node("model_call", self._model_call)
        graph.add_node("execute_tool", self._execute_tool)
        graph.add_node("model_continue", self._model_continue)
        graph.add_node("final_reply", self._reply)

        graph.set_entry_point("persist_user")
        graph.add_edge("persist_user", "match_catalog")
        graph.add_conditional_edges(
            "match_catalog",
            self._route_after_match,
            {"canned_reply": "canned_reply", "model_call": "model_call"},
        )
        graph.add_edge("canned_reply", END)
        graph.add_conditional_edges(
            "model_call",
            self._route_after_model,
            {"execute_tool": "execute_tool", "final_reply": "final_reply"},
        )
        graph.add_conditional_edges(
            "execute_tool",
            self._route_after_tool,
            {"model_continue": "model_continue", "final_reply": "final_reply"},
        )
        graph.add_edge("model_continue", "final_reply")
        graph.add_edge("final_reply", END)

        return graph.compile()


def build_orchestrator() -> Orchestrator:
    """Wire the orchestrator from configuration.

    MongoDB backs the catalog and conversations when ``MONGO_URI`` is set;
    otherwise both live in memory (seeded with the default catalog).
    """
    if config.MONGO_URI:
        from saathi.mongo import MongoConversationStore, MongoServiceRepository, connect

        db = connect(config.MONGO_URI, config.MONGO_DB)
        services: ServiceRepository = MongoServiceRepository(db)
        store: ConversationStore = MongoConversationStore(db)
    else:
        logger.info("MONGO_URI not set; using in-memory catalog and conversation store")
        services = InMemoryServiceRepository()
        store = InMemoryConversationStore()

    orchestrator = Orchestrator(services, store, ModelGateway())
    logger.debug(
        "Orchestrator ready: threshold=%.2f history=%d tools=%s",
        orchestrator.threshold, orchestrator.history_limit,
        orchestrator.registry.names if orchestrator.tools_enabled else "disabled",
    )
    return orchestrator
