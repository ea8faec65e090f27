"""MongoDB-backed catalog and conversation store.

Collections
-----------
* ``services``       — catalog entries (seeded, plus filed complaints)
* ``conversations``  — one document per conversation
* ``messages``       — one document per message, keyed by ``conversation_id``
* ``counters``       — monotonic sequence used to order messages

Every driver error is re-raised as ``PersistenceError`` so the
orchestrator can abort the turn without knowing about pymongo.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from saathi.catalog import Service, ServiceRepository
from saathi.errors import ConversationNotFound, PersistenceError
from saathi.store import (
    DEFAULT_USER_ID,
    Conversation,
    ConversationStore,
    Message,
    Role,
    make_title,
    validate_message,
)

logger = logging.getLogger(__name__)

_MESSAGE_SEQ_KEY = "messages"


def connect(uri: str, db_name: str) -> Database:
    """Open a client, ensure indexes, and return the database handle."""
    client: MongoClient = MongoClient(uri, tz_aware=True)
    db = client[db_name]
    try:
        db.messages.create_index(
            [("conversation_id", ASCENDING), ("seq", ASCENDING)]
        )
        db.conversations.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    except PyMongoError:
        # Index creation should not crash startup
        logger.warning("Could not ensure MongoDB indexes at startup", exc_info=True)
    logger.info("Connected to MongoDB database %r", db_name)
    return db


def _object_id(value: str) -> ObjectId | None:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _service_from_doc(doc: dict[str, Any]) -> Service:
    return Service(
        id=str(doc["_id"]),
        name=doc["name"],
        description=doc["description"],
        keywords=tuple(doc.get("keywords", ())),
        response=doc["response"],
        is_complaint=doc.get("is_complaint", False),
        created_at=doc.get("created_at") or datetime.now(UTC),
    )


def _service_to_doc(service: Service) -> dict[str, Any]:
    return {
        "name": service.name,
        "description": service.description,
        "keywords": list(service.keywords),
        "response": service.response,
        "is_complaint": service.is_complaint,
        "created_at": service.created_at,
    }


class MongoServiceRepository(ServiceRepository):
    def __init__(self, db: Database):
        self._col = db.services

    def list_services(self, *, include_complaints: bool = False) -> list[Service]:
        query: dict[str, Any] = {} if include_complaints else {"is_complaint": {"$ne": True}}
        try:
            docs = list(self._col.find(query).sort("_id", ASCENDING))
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to load services: {exc}") from exc
        return [_service_from_doc(d) for d in docs]

    def add(self, service: Service) -> Service:
        try:
            res = self._col.insert_one(_service_to_doc(service))
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to insert service: {exc}") from exc
        return service.model_copy(update={"id": str(res.inserted_id)})

    def replace_all(self, services: Iterable[Service]) -> int:
        docs = [_service_to_doc(s) for s in services]
        try:
            self._col.delete_many({})
            if docs:
                self._col.insert_many(docs)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to reseed services: {exc}") from exc
        return len(docs)


class MongoConversationStore(ConversationStore):
    def __init__(self, db: Database):
        self._conversations = db.conversations
        self._messages = db.messages
        self._counters = db.counters

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        oid = _object_id(conversation_id)
        if oid is None:
            return None
        try:
            doc = self._conversations.find_one({"_id": oid})
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to load conversation: {exc}") from exc
        if doc is None:
            return None
        return Conversation(
            id=str(doc["_id"]),
            user_id=doc.get("user_id", DEFAULT_USER_ID),
            title=doc.get("title", "New Chat"),
            created_at=doc["created_at"],
        )

    def create_conversation(
        self, user_id: str | None = None, title: str | None = None,
    ) -> Conversation:
        doc = {
            "user_id": user_id or DEFAULT_USER_ID,
            "title": make_title(title),
            "created_at": datetime.now(UTC),
        }
        try:
            res = self._conversations.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to create conversation: {exc}") from exc
        logger.debug("create_conversation: inserted id=%s", res.inserted_id)
        return Conversation(
            id=str(res.inserted_id),
            user_id=doc["user_id"],
            title=doc["title"],
            created_at=doc["created_at"],
        )

    def _next_seq(self) -> int:
        counter = self._counters.find_one_and_update(
            {"_id": _MESSAGE_SEQ_KEY},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    def append_message(
        self, conversation_id: str, role: Role | str, content: str,
    ) -> Message:
        parsed_role = validate_message(role, content)
        if self.get_conversation(conversation_id) is None:
            raise ConversationNotFound(conversation_id)
        try:
            message = Message(
                conversation_id=conversation_id,
                role=parsed_role,
                content=content,
                timestamp=datetime.now(UTC),
                seq=self._next_seq(),
            )
            self._messages.insert_one(
                {
                    "conversation_id": conversation_id,
                    "role": parsed_role.value,
                    "content": content,
                    "timestamp": message.timestamp,
                    "seq": message.seq,
                }
            )
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to append message: {exc}") from exc
        return message

    def delete_conversation(self, conversation_id: str) -> None:
        oid = _object_id(conversation_id)
        if oid is None:
            return
        try:
            self._messages.delete_many({"conversation_id": conversation_id})
            self._conversations.delete_one({"_id": oid})
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to delete conversation: {exc}") from exc
        logger.debug("delete_conversation: removed id=%s", conversation_id)

    def load_history(self, conversation_id: str, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        if self.get_conversation(conversation_id) is None:
            raise ConversationNotFound(conversation_id)
        try:
            cursor = (
                self._messages.find({"conversation_id": conversation_id})
                .sort([("seq", DESCENDING)])
                .limit(limit)
            )
            docs = list(cursor)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to load history: {exc}") from exc
        docs.reverse()
        return [
            Message(
                conversation_id=d["conversation_id"],
                role=Role(d["role"]),
                content=d["content"],
                timestamp=d["timestamp"],
                seq=d.get("seq", 0),
            )
            for d in docs
        ]
