"""Nearby hospitals, police stations and government offices (mock data)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from saathi.tools.base import NO_INFORMATION_MESSAGE, Tool, ToolParameter, ToolResult

NEARBY_SERVICES = {
    "hospital": [
        {"name": "Government Civil Hospital", "distance": "3 km", "contact": "07541-234567"},
        {"name": "Private Balaji Clinic", "distance": "1.5 km", "contact": "9876543210"},
    ],
    "police": [
        {"name": "Police Station - City Center", "distance": "5 km", "contact": "100 (Emergency)"},
    ],
    "office": [
        {"name": "Local Government Office", "distance": "7 km", "contact": "07541-800000"},
    ],
}

SERVICE_LABELS = {
    "hospital": "अस्पताल",
    "police": "पुलिस स्टेशन",
    "office": "सरकारी कार्यालय",
}

DEFAULT_LOCATION = "आपके वर्तमान स्थान"


class NearbyServiceTool(Tool):
    name = "getNearbyService"
    description = (
        "Finds nearby hospitals, police stations, or government offices for the "
        "user using mock geospatial data."
    )
    parameters = (
        ToolParameter(
            name="location",
            description=(
                "The location provided by the user (or a placeholder like "
                "'current location' if not specified)."
            ),
        ),
        ToolParameter(
            name="serviceType",
            description=(
                "The type of service the user is looking for. Must be one of: "
                "'hospital', 'police', or 'office'."
            ),
            required=True,
            enum=("hospital", "police", "office"),
        ),
    )

    def execute(self, arguments: Mapping[str, Any]) -> ToolResult:
        service_type = str(arguments["serviceType"]).strip().lower()
        location = str(arguments.get("location") or "").strip() or DEFAULT_LOCATION

        places = NEARBY_SERVICES.get(service_type)
        if not places:
            return ToolResult(success=True, message=NO_INFORMATION_MESSAGE)

        listing = "; ".join(
            f"{i}. {p['name']} ({p['distance']} दूर, संपर्क: {p['contact']})"
            for i, p in enumerate(places, start=1)
        )
        return ToolResult(
            success=True,
            message=f"{location} के लिए {SERVICE_LABELS[service_type]} के परिणाम: {listing}.",
        )
