"""Complaint filing tool.

Files a grievance on the citizen's behalf by storing a complaint-tagged
record in the service catalog.  The returned message carries the record
id so the final reply can quote it as a reference number.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from saathi.catalog import Service, ServiceRepository
from saathi.tools.base import Tool, ToolParameter, ToolResult

logger = logging.getLogger(__name__)

COMPLAINT_FIELDS_MISSING_MESSAGE = (
    "शिकायत दर्ज करने के लिए सेवा का नाम और समस्या का विवरण दोनों आवश्यक हैं। "
    "(Both serviceName and problemDescription are required to file a complaint.)"
)


class ComplaintTool(Tool):
    name = "complainService"
    description = "Files a service complaint on behalf of the user."
    parameters = (
        ToolParameter(
            name="serviceName",
            description=(
                "The name of the service the user is complaining about "
                "(e.g., 'electricity', 'water', 'medical')."
            ),
            required=True,
        ),
        ToolParameter(
            name="problemDescription",
            description="A detailed description of the problem provided by the user.",
            required=True,
        ),
    )

    def __init__(self, repository: ServiceRepository):
        self._repository = repository

    def missing_arguments_message(self, missing: list[str]) -> str:
        return COMPLAINT_FIELDS_MISSING_MESSAGE

    def execute(self, arguments: Mapping[str, Any]) -> ToolResult:
        service_name = str(arguments["serviceName"]).strip()
        problem = str(arguments["problemDescription"]).strip()

        record = self._repository.add(
            Service(
                name=f"Complaint: {service_name}",
                description=f"User complained about: {problem}",
                keywords=("complaint", "filed", service_name.lower()),
                response=f"Complaint regarding {service_name} received and logged.",
                is_complaint=True,
            )
        )
        logger.info("Complaint filed for %r (ref=%s)", service_name, record.id)

        return ToolResult(
            success=True,
            message=(
                f"आपकी {service_name} संबंधी शिकायत सफलतापूर्वक दर्ज कर ली गई है। "
                f"संदर्भ संख्या: {record.id}। "
                f"(Complaint about {service_name} has been filed successfully. "
                f'The problem description saved is: "{problem}". Reference ID: {record.id}.)'
            ),
            reference_id=record.id,
        )
