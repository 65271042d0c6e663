"""Predefined vehicle inspection templates addressable by well-known name."""

from __future__ import annotations

from typing import Any

from fleetcheck.common.models import Template


def _yes_no_na(item_id: str, description: str, *, error_on: str = "no", required: bool = True,
               behavior: str = "raises_error", long_description: str | None = None) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": item_id,
        "description": description,
        "validation_type": "yes_no_na",
        "validation_behavior": behavior,
        "is_required": required,
        "config": {"error_values": [error_on]},
    }
    if long_description:
        item["long_description"] = long_description
    return item


def _quantity(item_id: str, description: str, minimum: int, maximum: int, *, required: bool = True,
              behavior: str = "raises_error", error_outside_range: bool = True) -> dict[str, Any]:
    return {
        "id": item_id,
        "description": description,
        "validation_type": "quantity",
        "validation_behavior": behavior,
        "is_required": required,
        "config": {"min": minimum, "max": maximum, "error_outside_range": error_outside_range},
    }


_LIGHTS_DETAIL = (
    "Check that every light on the vehicle works:\n\n"
    "• Front and rear position lights\n"
    "• Low beams\n"
    "• High beams\n"
    "• Brake lights\n"
    "• Front and rear turn signals\n"
    "• Reversing lights\n"
    "• Hazard lights\n"
    "• Licence plate lights\n\n"
    'All lights must work. If any does not, answer "no" and describe it in the notes.'
)

_AIR_PRESSURE_DETAIL = (
    "Check the air brake system pressure:\n\n"
    "• With the engine running, read the pressure gauge\n"
    "• Pressure must be between 80 and 120 PSI\n"
    "• The system must hold pressure without leaks\n"
    "• Test the parking brake (emergency valve)\n"
    "• Check that the relief valves work\n\n"
    "VALID RANGE: 80 - 120 PSI\n"
    "Outside this range the vehicle must NOT be driven."
)


_DAILY: dict[str, Any] = {
    "id": "daily_inspection",
    "name": "Daily Vehicle Inspection",
    "description": "Daily vehicle inspection checklist - sections 1 to 4",
    "resource_type": "vehicle",
    "sections": [
        {
            "id": "electrical_system",
            "title": "1. ELECTRICAL SYSTEM",
            "items": [
                _yes_no_na("lights_complete", "Full lights check", long_description=_LIGHTS_DETAIL),
                _yes_no_na("windshield_wipers", "Windshield wipers"),
                _yes_no_na("reverse_alarm", "Reverse alarm"),
                _yes_no_na("horn", "Horn"),
            ],
        },
        {
            "id": "tractor",
            "title": "2. TRACTOR",
            "items": [
                {
                    "id": "fluids",
                    "description": "Fluids",
                    "validation_type": "good_fair_poor",
                    "validation_behavior": "raises_error",
                    "is_required": True,
                    "config": {"error_values": ["poor"]},
                },
                {
                    "id": "brake_air_pressure",
                    "description": "Air pressure / brake system",
                    "long_description": _AIR_PRESSURE_DETAIL,
                    "validation_type": "min_max",
                    "validation_behavior": "raises_error",
                    "is_required": True,
                    "config": {"min": 80, "max": 120, "error_outside_range": True},
                },
                _yes_no_na("doors_seats", "Doors and seats", required=False, behavior="raises_warning"),
            ],
        },
        {
            "id": "semitrailer",
            "title": "3. SEMITRAILER",
            "items": [
                _yes_no_na("stakes", "Stakes"),
                _yes_no_na("side_rails", "Side rails"),
                _yes_no_na("tailgate", "Tailgate"),
            ],
        },
        {
            "id": "general",
            "title": "4. GENERAL",
            "items": [
                _yes_no_na("damage", "Damage", error_on="yes"),
                _yes_no_na("fluid_leaks", "Fluid leaks", error_on="yes"),
                {
                    "id": "brakes",
                    "description": "Brakes",
                    "validation_type": "good_fair_poor",
                    "validation_behavior": "raises_error",
                    "is_required": True,
                    "config": {"error_values": ["poor", "fair"]},
                },
            ],
        },
    ],
}

_PARTIAL: dict[str, Any] = {
    "id": "partial_inspection",
    "name": "Partial Inspection - Safety",
    "description": "Partial inspection checklist - sections 5 to 7",
    "resource_type": "vehicle",
    "sections": [
        {
            "id": "safety_equipment",
            "title": "5. SAFETY EQUIPMENT",
            "items": [
                _yes_no_na("trailer_extinguisher", "Semitrailer extinguisher"),
                _yes_no_na("cab_extinguisher", "Cab extinguisher"),
                _yes_no_na("first_aid_kit", "First aid kit"),
            ],
        },
        {
            "id": "ppe",
            "title": "6. PERSONAL PROTECTIVE EQUIPMENT",
            "items": [
                _yes_no_na("helmet", "Helmet"),
                _yes_no_na("safety_footwear", "Safety footwear"),
                _yes_no_na("reflective_vest", "Reflective vest"),
            ],
        },
        {
            "id": "load_equipment",
            "title": "7. LOAD SECURING EQUIPMENT",
            "items": [
                _quantity("tarp_bows", "Set of tarp bows", 4, 8),
                _quantity("chains", "Chains", 2, 6),
                _quantity(
                    "corner_protectors",
                    "Corner protectors",
                    0,
                    20,
                    required=False,
                    behavior="raises_warning",
                    error_outside_range=False,
                ),
            ],
        },
    ],
}


def _complete() -> dict[str, Any]:
    return {
        "id": "complete_inspection",
        "name": "Complete Inspection",
        "description": "Complete checklist with every section",
        "resource_type": "vehicle",
        "sections": [*_DAILY["sections"], *_PARTIAL["sections"]],
    }


CATALOG_NAMES = ("daily", "partial", "complete")


def _payloads() -> dict[str, dict[str, Any]]:
    return {"daily": _DAILY, "partial": _PARTIAL, "complete": _complete()}


def get_template(name: str) -> Template | None:
    """Return a fresh copy of the predefined template registered under name."""
    payload = _payloads().get(name)
    if payload is None:
        return None
    return Template.model_validate(payload)


def find_predefined_template(template_id: str) -> Template | None:
    for payload in _payloads().values():
        if payload["id"] == template_id:
            return Template.model_validate(payload)
    return None


def list_templates() -> list[Template]:
    return [Template.model_validate(payload) for payload in _payloads().values()]
