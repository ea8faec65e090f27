"""Shared test fixtures for the Digital Saathi test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ["METRICS_ENABLED"] = "false"
    # Force the in-memory stores even if a developer has Mongo configured
    os.environ["MONGO_URI"] = ""


@pytest.fixture
def services():
    """Service catalog seeded with the default services."""
    from saathi.catalog import InMemoryServiceRepository

    return InMemoryServiceRepository()


@pytest.fixture
def store():
    from saathi.store import InMemoryConversationStore

    return InMemoryConversationStore()


@pytest.fixture
def chat_llm():
    """Mock tool-capable model; ``bind_tools`` hands back the same mock."""
    llm = MagicMock()
    llm.bind_tools.return_value = llm
    return llm


@pytest.fixture
def completion_llm():
    return MagicMock()


@pytest.fixture
def gateway(chat_llm, completion_llm):
    from saathi.gateway import ModelGateway

    return ModelGateway(chat_llm=chat_llm, completion_llm=completion_llm)


@pytest.fixture
def make_orchestrator(services, store, gateway):
    """Factory fixture: build an orchestrator, overriding any collaborator."""
    from saathi.orchestrator import Orchestrator

    def _make(**overrides):
        kwargs = {
            "services": services,
            "store": store,
            "gateway": gateway,
            "threshold": 0.4,
            "history_limit": 20,
            "tools_enabled": True,
        }
        kwargs.update(overrides)
        return Orchestrator(**kwargs)

    return _make
