"""Farming lookups: mandi prices, weather and crop insurance (mock data)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from saathi.tools.base import NO_INFORMATION_MESSAGE, Tool, ToolParameter, ToolResult

MANDI_PRICES = {
    "गेहूं": "₹2400-₹2550/क्विंटल",
    "प्याज": "₹25-₹40/किलो",
    "चना": "₹5000-₹5300/क्विंटल",
    "धान": "₹2200-₹2400/क्विंटल",
}

# English crop names the model may pass instead of Hindi ones
CROP_ALIASES = {
    "wheat": "गेहूं",
    "onion": "प्याज",
    "gram": "चना",
    "chickpea": "चना",
    "paddy": "धान",
    "rice": "धान",
}

WEATHER = {
    "दिल्ली": "आज आंशिक रूप से बादल छाए हुए हैं, तापमान 28°C है, और हवा की गति कम है।",
    "delhi": "आज आंशिक रूप से बादल छाए हुए हैं, तापमान 28°C है, और हवा की गति कम है।",
    "मुंबई": "गरज के साथ हल्की बारिश की संभावना है। तापमान 26°C है।",
    "mumbai": "गरज के साथ हल्की बारिश की संभावना है। तापमान 26°C है।",
}
GENERAL_WEATHER = (
    "आंशिक रूप से बादल छाए हुए हैं, तापमान 28°C है, और अगले 24 घंटों में हल्की "
    "बारिश की संभावना है।"
)

INSURANCE_INFO = (
    "प्रधानमंत्री फसल बीमा योजना (PMFBY) का उद्देश्य फसल के नुकसान पर किसानों को "
    "वित्तीय सहायता प्रदान करना है। पात्रता और आवेदन के लिए आधिकारिक PMFBY पोर्टल "
    "(https://pmfby.gov.in) देखें।"
)


class AgricultureTool(Tool):
    name = "getAgricultureData"
    description = (
        "Fetches information related to farming, such as estimated market (mandi) "
        "prices, weather conditions, or crop insurance scheme details, using local "
        "data and public portal references."
    )
    parameters = (
        ToolParameter(
            name="queryType",
            description=(
                "The type of data requested: 'weather' for temperature, 'mandi' for "
                "crop prices, or 'insurance' for scheme details."
            ),
            required=True,
            enum=("weather", "mandi", "insurance"),
        ),
        ToolParameter(
            name="location",
            description="The city/area/state name relevant to the query.",
        ),
        ToolParameter(
            name="cropName",
            description=(
                "The name of the crop for which the user is seeking mandi price "
                "(e.g., 'गेहूं' or 'onion')."
            ),
        ),
    )

    def execute(self, arguments: Mapping[str, Any]) -> ToolResult:
        query_type = str(arguments["queryType"]).strip()
        location = str(arguments.get("location") or "").strip()
        crop = str(arguments.get("cropName") or "").strip()

        if query_type == "mandi" and crop:
            key = CROP_ALIASES.get(crop.lower(), crop.lower())
            price = MANDI_PRICES.get(key)
            if price is None:
                return ToolResult(success=True, message=NO_INFORMATION_MESSAGE)
            return ToolResult(
                success=True,
                message=(
                    f"{crop} का अनुमानित भाव {location or 'स्थानीय बाज़ार'} में लगभग "
                    f"{price} है। नवीनतम और आधिकारिक मंडी भाव के लिए AGMARKNET पोर्टल "
                    "(https://agmarknet.gov.in) देखें।"
                ),
            )

        if query_type == "weather" and location:
            info = WEATHER.get(location.lower(), GENERAL_WEATHER)
            return ToolResult(
                success=True,
                message=(
                    f"{location} में मौसम: {info} भारतीय मौसम विभाग (IMD) की आधिकारिक "
                    "वेबसाइट पर अधिक जानकारी प्राप्त करें।"
                ),
            )

        if query_type == "insurance":
            return ToolResult(success=True, message=INSURANCE_INFO)

        return ToolResult(success=True, message=NO_INFORMATION_MESSAGE)
