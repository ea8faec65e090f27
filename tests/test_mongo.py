"""Tests for the MongoDB catalog and conversation store (driver mocked)."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from saathi.catalog import Service
from saathi.errors import ConversationNotFound, PersistenceError
from saathi.mongo import MongoConversationStore, MongoServiceRepository
from saathi.store import Role

NOW = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def db():
    return MagicMock()


def _conversation_doc(oid: ObjectId) -> dict:
    return {"_id": oid, "user_id": "guest_user", "title": "New Chat", "created_at": NOW}


class TestMongoServiceRepository:
    def test_list_excludes_complaints(self, db):
        db.services.find.return_value.sort.return_value = [
            {
                "_id": ObjectId(),
                "name": "Water Problem",
                "description": "Lodge water-related issues",
                "keywords": ["water"],
                "response": "reply",
                "created_at": NOW,
            }
        ]
        services = MongoServiceRepository(db).list_services()

        db.services.find.assert_called_once_with({"is_complaint": {"$ne": True}})
        assert services[0].name == "Water Problem"
        assert services[0].keywords == ("water",)
        assert services[0].is_complaint is False

    def test_list_with_complaints_has_no_filter(self, db):
        db.services.find.return_value.sort.return_value = []
        MongoServiceRepository(db).list_services(include_complaints=True)
        db.services.find.assert_called_once_with({})

    def test_add_returns_inserted_id(self, db):
        oid = ObjectId()
        db.services.insert_one.return_value.inserted_id = oid
        stored = MongoServiceRepository(db).add(
            Service(name="Complaint: X", description="d", response="r", is_complaint=True)
        )
        assert stored.id == str(oid)
        assert db.services.insert_one.call_args[0][0]["is_complaint"] is True

    def test_driver_error_becomes_persistence_error(self, db):
        db.services.find.side_effect = PyMongoError("connection refused")
        with pytest.raises(PersistenceError):
            MongoServiceRepository(db).list_services()

    def test_replace_all_clears_then_inserts(self, db):
        count = MongoServiceRepository(db).replace_all(
            [Service(name="A", description="", response="a")]
        )
        assert count == 1
        db.services.delete_many.assert_called_once_with({})
        assert len(db.services.insert_many.call_args[0][0]) == 1


class TestMongoConversationStore:
    def test_create_conversation(self, db):
        oid = ObjectId()
        db.conversations.insert_one.return_value.inserted_id = oid
        conversation = MongoConversationStore(db).create_conversation(title="पानी की समस्या है")
        assert conversation.id == str(oid)
        assert conversation.user_id == "guest_user"
        assert conversation.title == "पानी की समस्या है"

    def test_invalid_object_id_is_not_found(self, db):
        store = MongoConversationStore(db)
        assert store.get_conversation("not-an-object-id") is None
        db.conversations.find_one.assert_not_called()

    def test_append_assigns_counter_seq(self, db):
        oid = ObjectId()
        db.conversations.find_one.return_value = _conversation_doc(oid)
        db.counters.find_one_and_update.return_value = {"_id": "messages", "seq": 7}

        message = MongoConversationStore(db).append_message(str(oid), Role.USER, "hello")

        assert message.seq == 7
        inserted = db.messages.insert_one.call_args[0][0]
        assert inserted["role"] == "user"
        assert inserted["conversation_id"] == str(oid)

    def test_append_to_missing_conversation_raises(self, db):
        db.conversations.find_one.return_value = None
        with pytest.raises(ConversationNotFound):
            MongoConversationStore(db).append_message(str(ObjectId()), Role.USER, "hello")
        db.messages.insert_one.assert_not_called()

    def test_append_driver_error_becomes_persistence_error(self, db):
        oid = ObjectId()
        db.conversations.find_one.return_value = _conversation_doc(oid)
        db.counters.find_one_and_update.return_value = {"seq": 1}
        db.messages.insert_one.side_effect = PyMongoError("write concern")
        with pytest.raises(PersistenceError):
            MongoConversationStore(db).append_message(str(oid), Role.USER, "hello")

    def test_load_history_returns_oldest_first(self, db):
        oid = ObjectId()
        db.conversations.find_one.return_value = _conversation_doc(oid)
        newest_first = [
            {"conversation_id": str(oid), "role": "assistant", "content": "reply",
             "timestamp": NOW, "seq": 2},
            {"conversation_id": str(oid), "role": "user", "content": "question",
             "timestamp": NOW, "seq": 1},
        ]
        db.messages.find.return_value.sort.return_value.limit.return_value = iter(newest_first)

        history = MongoConversationStore(db).load_history(str(oid), 20)

        assert [m.content for m in history] == ["question", "reply"]
        db.messages.find.return_value.sort.return_value.limit.assert_called_once_with(20)

    def test_load_history_orders_by_sequence_only(self, db):
        oid = ObjectId()
        db.conversations.find_one.return_value = _conversation_doc(oid)
        db.messages.find.return_value.sort.return_value.limit.return_value = iter([])

        MongoConversationStore(db).load_history(str(oid), 20)

        db.messages.find.return_value.sort.assert_called_once_with([("seq", DESCENDING)])

    def test_delete_conversation_removes_messages_and_document(self, db):
        oid = ObjectId()
        MongoConversationStore(db).delete_conversation(str(oid))
        db.messages.delete_many.assert_called_once_with({"conversation_id": str(oid)})
        db.conversations.delete_one.assert_called_once_with({"_id": oid})

    def test_delete_invalid_id_is_ignored(self, db):
        MongoConversationStore(db).delete_conversation("not-an-object-id")
        db.conversations.delete_one.assert_not_called()

    def test_delete_driver_error_becomes_persistence_error(self, db):
        db.messages.delete_many.side_effect = PyMongoError("not primary")
        with pytest.raises(PersistenceError):
            MongoConversationStore(db).delete_conversation(str(ObjectId()))

    def test_load_history_zero_limit_skips_query(self, db):
        assert MongoConversationStore(db).load_history(str(ObjectId()), 0) == []
        db.messages.find.assert_not_called()
