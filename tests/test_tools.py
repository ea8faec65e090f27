"""Tests for the tool contract, registry and the four built-in tools."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from saathi.catalog import InMemoryServiceRepository
from saathi.errors import UnknownTool
from saathi.tools import (
    AgricultureTool,
    ComplaintTool,
    NearbyServiceTool,
    SchemeEducationTool,
    ToolRegistry,
    build_default_registry,
)
from saathi.tools.base import NO_INFORMATION_MESSAGE, TOOL_FAILURE_MESSAGE, ToolResult
from saathi.tools.complaint import COMPLAINT_FIELDS_MISSING_MESSAGE


@pytest.fixture
def registry(services):
    return build_default_registry(services)


class TestRegistry:
    def test_default_tools_in_order(self, registry):
        assert registry.names == [
            "complainService",
            "getNearbyService",
            "getAgricultureData",
            "getSchemeAndEducationData",
        ]
        assert len(registry) == 4

    def test_declarative_schema(self, registry):
        complaint = registry.schemas()[0]
        assert complaint["name"] == "complainService"
        assert complaint["parameters"] == [
            {"name": "serviceName", "type": "string", "required": True},
            {"name": "problemDescription", "type": "string", "required": True},
        ]

    def test_model_schema_is_json_schema(self, registry):
        nearby = next(s for s in registry.model_schemas() if s["name"] == "getNearbyService")
        schema = nearby["input_schema"]
        assert schema["type"] == "object"
        assert schema["required"] == ["serviceType"]
        assert schema["properties"]["serviceType"]["enum"] == ["hospital", "police", "office"]

    def test_unknown_tool_raises(self, registry):
        with pytest.raises(UnknownTool) as exc_info:
            registry.execute("bookFlight", {})
        assert exc_info.value.code == "UNKNOWN_TOOL"
        assert "bookFlight" not in registry

    def test_duplicate_registration_rejected(self, services):
        with pytest.raises(ValueError):
            ToolRegistry([ComplaintTool(services), ComplaintTool(services)])

    def test_missing_required_argument_is_failure_result(self, registry):
        result = registry.execute("getNearbyService", {"location": "Bhopal"})
        assert result.success is False
        assert "serviceType" in result.message

    def test_handler_exception_becomes_failure_result(self, registry):
        with patch.object(NearbyServiceTool, "execute", side_effect=RuntimeError("boom")):
            result = registry.execute("getNearbyService", {"serviceType": "hospital"})
        assert result == ToolResult(success=False, message=TOOL_FAILURE_MESSAGE)
        assert "boom" not in result.message

    def test_handler_exception_records_metric(self, registry):
        with (
            patch.object(NearbyServiceTool, "execute", side_effect=RuntimeError("boom")),
            patch("saathi.tools.base.metrics") as mock_metrics,
        ):
            registry.execute("getNearbyService", {"serviceType": "hospital"})
        mock_metrics.record_failure.assert_called_once()
        assert mock_metrics.record_failure.call_args[1]["error_type"] == "RuntimeError"


    @pytest.mark.parametrize(
        "tool_name, arguments, expected",
        [
            ("getAgricultureData", {"queryType": "weather", "location": 110001}, "110001"),
            ("getSchemeAndEducationData",
             {"queryType": "scholarship_status", "idNumber": 123456789012}, "Approved"),
            ("getNearbyService", {"serviceType": "hospital", "location": 462001}, "462001"),
        ],
    )
    def test_numeric_arguments_are_read_as_text(self, registry, tool_name, arguments, expected):
        result = registry.execute(tool_name, arguments)
        assert result.success is True
        assert expected in result.message


class TestComplaintTool:
    def test_files_complaint_record(self, services):
        result = ComplaintTool(services).execute(
            {"serviceName": "Electricity Issue", "problemDescription": "बिजली नहीं आ रही"}
        )
        complaints = [
            s for s in services.list_services(include_complaints=True) if s.is_complaint
        ]
        assert result.success is True
        assert len(complaints) == 1
        assert complaints[0].name == "Complaint: Electricity Issue"
        assert complaints[0].description == "User complained about: बिजली नहीं आ रही"
        assert result.reference_id == complaints[0].id
        assert complaints[0].id in result.message

    def test_blank_description_files_nothing(self, services):
        registry = build_default_registry(services)
        result = registry.execute(
            "complainService",
            {"serviceName": "Electricity Issue", "problemDescription": "   "},
        )
        assert result.success is False
        assert result.message == COMPLAINT_FIELDS_MISSING_MESSAGE
        assert not any(s.is_complaint for s in services.list_services(include_complaints=True))

    def test_repository_failure_files_nothing(self):
        repository = MagicMock(spec=InMemoryServiceRepository)
        repository.add.side_effect = RuntimeError("write failed")
        registry = ToolRegistry([ComplaintTool(repository)])

        result = registry.execute(
            "complainService", {"serviceName": "Water", "problemDescription": "no supply"},
        )
        assert result.success is False
        assert result.reference_id is None

    def test_reference_id_serialises_camel_case(self, services):
        result = ComplaintTool(services).execute(
            {"serviceName": "Water", "problemDescription": "no supply"}
        )
        assert result.model_dump(by_alias=True)["referenceId"] == result.reference_id


class TestAgricultureTool:
    def test_mandi_price_hindi_crop(self):
        result = AgricultureTool().execute(
            {"queryType": "mandi", "cropName": "गेहूं", "location": "इंदौर"}
        )
        assert "₹2400-₹2550/क्विंटल" in result.message
        assert "इंदौर" in result.message

    def test_mandi_price_english_alias(self):
        result = AgricultureTool().execute({"queryType": "mandi", "cropName": "Onion"})
        assert "₹25-₹40/किलो" in result.message

    def test_unknown_crop_is_best_effort(self):
        result = AgricultureTool().execute({"queryType": "mandi", "cropName": "dragonfruit"})
        assert result.success is True
        assert result.message == NO_INFORMATION_MESSAGE

    def test_weather_known_city(self):
        result = AgricultureTool().execute({"queryType": "weather", "location": "Mumbai"})
        assert "26°C" in result.message

    def test_weather_unknown_city_uses_general_forecast(self):
        result = AgricultureTool().execute({"queryType": "weather", "location": "सीहोर"})
        assert "सीहोर" in result.message
        assert "28°C" in result.message

    def test_insurance(self):
        result = AgricultureTool().execute({"queryType": "insurance"})
        assert "PMFBY" in result.message


class TestSchemeEducationTool:
    def test_scheme_lookup_by_alias(self):
        result = SchemeEducationTool().execute(
            {"queryType": "scheme_lookup", "schemeName": "PM Kisan Samman Nidhi"}
        )
        assert "पीएम किसान" in result.message
        assert "https://pmkisan.gov.in" in result.message

    def test_unknown_scheme_points_to_portal(self):
        result = SchemeEducationTool().execute(
            {"queryType": "scheme_lookup", "schemeName": "Ujjwala"}
        )
        assert result.success is True
        assert "https://www.india.gov.in" in result.message

    def test_scholarship_short_id_asks_again(self):
        result = SchemeEducationTool().execute(
            {"queryType": "scholarship_status", "idNumber": "12345"}
        )
        assert "वैध" in result.message

    def test_scholarship_status(self):
        result = SchemeEducationTool().execute(
            {"queryType": "scholarship_status", "idNumber": "MP2024000123"}
        )
        assert "MP2024000123" in result.message
        assert "Approved" in result.message

    def test_scholarship_without_id_has_no_information(self):
        result = SchemeEducationTool().execute({"queryType": "scholarship_status"})
        assert result.message == NO_INFORMATION_MESSAGE


class TestNearbyServiceTool:
    def test_lists_hospitals(self):
        result = NearbyServiceTool().execute({"serviceType": "hospital", "location": "Vidisha"})
        assert result.message.startswith("Vidisha के लिए अस्पताल के परिणाम")
        assert "1. Government Civil Hospital" in result.message
        assert "2. Private Balaji Clinic" in result.message

    def test_default_location(self):
        result = NearbyServiceTool().execute({"serviceType": "police"})
        assert "आपके वर्तमान स्थान" in result.message

    def test_unknown_service_type(self):
        result = NearbyServiceTool().execute({"serviceType": "bank"})
        assert result.message == NO_INFORMATION_MESSAGE
