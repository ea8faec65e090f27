"""Digital Saathi AI — a conversational assistant for public services.

Architecture Overview
=====================

Every incoming message is one *turn*, sequenced by a LangGraph state
machine (``saathi/orchestrator.py``):

1. **Canned path** — the message is scored against the service catalog
   with a bigram (Dice) similarity.  If the best service scores above the
   threshold (0.4), its pre-authored response is returned; no model call.

2. **Model path** — otherwise the bounded history window (last 20
   messages) and the tool schemas go to Claude via ``langchain-anthropic``.
   The model answers directly or asks for one tool.

3. **Tool path** — the requested tool runs (complaint filing, nearby
   services, farming data, scheme lookups), its result is persisted as a
   tool-role message and handed back to the model for the final answer.

Routing: match → (canned?) → reply
               → (else) → model → (tool?) → tool → model → reply

Key Design Decisions
--------------------
- **Matcher is pure**: it takes an explicit catalog snapshot, so it is
  safe under concurrent requests and trivially testable.
- **One tool per turn**: the graph has no edge back from the second model
  call to the tool node.
- **Injected persistence**: ``ConversationStore`` / ``ServiceRepository``
  have in-memory and MongoDB implementations.
- **Per-conversation locking**: overlapping requests for the same
  conversation cannot interleave their messages.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``saathi/orchestrator.py`` — turn state machine (LangGraph StateGraph)
- ``saathi/matcher.py`` — lexical similarity matcher
- ``saathi/catalog.py`` — service catalog model, seed data, repositories
- ``saathi/store.py`` — conversation/message store (in-memory)
- ``saathi/mongo.py`` — MongoDB catalog and conversation store
- ``saathi/gateway.py`` — model gateway (chat + completion models)
- ``saathi/tools/`` — tool contract, registry and the four tools
- ``saathi/config.py`` — centralized configuration from environment variables
- ``saathi/prompts.py`` — system prompt
- ``saathi/server.py`` — FastAPI application
- ``saathi/main.py`` — CLI chat interface
- ``saathi/seed.py`` — catalog seeding
- ``saathi/api/`` — FastAPI routes and Pydantic schemas
"""
