"""Service catalog: the known service intents and their canned responses.

The catalog is seeded offline (see ``saathi/seed.py``) and read on every
incoming message.  The chat path never edits an existing entry; the only
write it performs is the complaint tool adding *new* records tagged with
``is_complaint=True``.  Those records are kept out of the matcher snapshot
so a filed complaint can never become somebody else's canned reply.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Service(BaseModel):
    """A single catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str
    description: str
    keywords: tuple[str, ...] = ()
    response: str
    is_complaint: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def matchable_terms(self) -> list[str]:
        """Name, description, then every keyword, in that order."""
        return [self.name, self.description, *self.keywords]


# ── Default seed data ────────────────────────────────────────────────

SEED_SERVICES: tuple[Service, ...] = (
    Service(
        name="Government Forms",
        description="Fill forms with voice guidance",
        keywords=("form", "forms", "सरकारी फॉर्म", "फॉर्म भरना"),
        response=(
            "फॉर्म भरने में मैं expert हूं! बताइए कौन सा फॉर्म: सरकारी योजना का फॉर्म, "
            "बैंक का फॉर्म, राशन कार्ड, आधार कार्ड या पासपोर्ट? आप बस बोलकर जानकारी "
            "दे दीजिए, मैं पूरा फॉर्म भर दूंगा। कोई गलती नहीं होगी।"
        ),
    ),
    Service(
        name="Electricity Issue",
        description="Register & track complaints",
        keywords=("electricity", "light", "बिजली", "बिजली की शिकायत"),
        response=(
            "बिजली की समस्या के लिए मैं आपकी पूरी मदद करूंगा। आपको क्या चाहिए: नया "
            "बिजली कनेक्शन, बिजली बिल की समस्या, या बिजली नहीं आ रही? कृपया बताएं कि "
            "कौन सी समस्या है? मैं तुरंत फॉर्म भरने या शिकायत दर्ज करने में मदद करूंगा।"
        ),
    ),
    Service(
        name="Water Problem",
        description="Lodge water-related issues",
        keywords=("water", "पानी", "पानी की समस्या"),
        response=(
            "पानी की समस्या के लिए मैं यहाँ हूं। बताइए: नया पानी कनेक्शन चाहिए, पानी "
            "नहीं आ रहा, या पाइप लीक हो रहा है? आप जो भी समस्या बताएंगे, मैं तुरंत "
            "संबंधित विभाग में शिकायत दर्ज कर दूंगा और आपको reference number भी दूंगा।"
        ),
    ),
    Service(
        name="Medical Help",
        description="Find hospitals & health services",
        keywords=("medical", "doctor", "अस्पताल", "दवाई", "डॉक्टर"),
        response=(
            "स्वास्थ्य सेवा के लिए मैं तुरंत मदद करूंगा। बताइए: नजदीकी अस्पताल, दवाई "
            "की दुकान, या डॉक्टर की appointment? आपकी location बताइए या कौन सी बीमारी "
            "है? मैं तुरंत सही जगह का पता बता दूंगा।"
        ),
    ),
    Service(
        name="Farming Support",
        description="Agriculture guidance & schemes",
        keywords=("farming", "किसान", "खेती", "फसल"),
        response=(
            "किसान भाई, खेती-बाड़ी की हर समस्या का समाधान यहाँ है: बीज और खाद की "
            "जानकारी, सरकारी योजनाएं, फसल बीमा, मंडी के भाव, या मौसम की जानकारी। आप "
            "कौन सी फसल उगाते हैं? या कोई specific problem है? मैं तुरंत सही guidance दूंगा।"
        ),
    ),
    Service(
        name="Education Help",
        description="Course info & form assistance",
        keywords=("education", "पढ़ाई", "स्कूल", "college"),
        response=(
            "पढ़ाई और शिक्षा संबंधित सहायता के लिए मैं यहाँ हूं। बताइए: किसी कोर्स के "
            "बारे में जानकारी, एडमिशन फॉर्म भरना है, या छात्रवृत्ति योजनाएं?"
        ),
    ),
    Service(
        name="Technical Support",
        description="Phone, app & website help",
        keywords=("technical", "support", "तकनीकी"),
        response=(
            "मैं तकनीकी सहायता के लिए तैयार हूं। बताइए, क्या समस्या है? फोन, ऐप, या "
            "वेबसाइट से संबंधित?"
        ),
    ),
    Service(
        name="Emergency Help",
        description="Urgent assistance & contacts",
        keywords=("emergency", "help", "आपातकालीन", "मदद"),
        response=(
            "आपातकालीन मदद के लिए मैं यहाँ हूँ। मैं आपके लिए नजदीकी पुलिस स्टेशन या "
            "अस्पताल का पता और फोन नंबर ढूंढ सकता हूँ। कृपया बताएं कि क्या हुआ है?"
        ),
    ),
)


# ── Repositories ─────────────────────────────────────────────────────


class ServiceRepository(ABC):
    """Read/insert access to the catalog.

    ``list_services`` must return entries in a stable order (insertion
    order) so the matcher's first-wins tie-break is deterministic.
    """

    @abstractmethod
    def list_services(self, *, include_complaints: bool = False) -> list[Service]:
        """Return catalog entries in insertion order."""

    @abstractmethod
    def add(self, service: Service) -> Service:
        """Persist a new entry and return it with its assigned ``id``."""

    @abstractmethod
    def replace_all(self, services: Iterable[Service]) -> int:
        """Drop every entry and insert *services*.  Used by seeding only."""

    def snapshot(self) -> tuple[Service, ...]:
        """Immutable view of the matchable (non-complaint) catalog."""
        return tuple(self.list_services())


class InMemoryServiceRepository(ServiceRepository):
    """Thread-safe in-process catalog, pre-seeded by default."""

    def __init__(self, services: Iterable[Service] | None = None):
        self._lock = threading.Lock()
        self._services: list[Service] = []
        self.replace_all(SEED_SERVICES if services is None else services)

    def list_services(self, *, include_complaints: bool = False) -> list[Service]:
        with self._lock:
            return [
                s for s in self._services
                if include_complaints or not s.is_complaint
            ]

    def add(self, service: Service) -> Service:
        stored = service.model_copy(update={"id": uuid.uuid4().hex})
        with self._lock:
            self._services.append(stored)
        return stored

    def replace_all(self, services: Iterable[Service]) -> int:
        stored = [
            s if s.id else s.model_copy(update={"id": uuid.uuid4().hex})
            for s in services
        ]
        with self._lock:
            self._services = stored
        return len(stored)
