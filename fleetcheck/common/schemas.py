"""Schema validation for checklist template payloads."""

from __future__ import annotations

import re
from typing import Any

from fleetcheck.common.models import ResourceType, ValidationBehavior, ValidationType


VALID_VALIDATION_TYPES = {member.value for member in ValidationType}
VALID_VALIDATION_BEHAVIORS = {member.value for member in ValidationBehavior}
VALID_RESOURCE_TYPES = {member.value for member in ResourceType}

# Stored ids become file and directory names under the data directory.
STORAGE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_storage_id(value: Any) -> bool:
    return isinstance(value, str) and STORAGE_ID_PATTERN.fullmatch(value) is not None


class SchemaValidationError(Exception):
    """Raised when schema validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_string_list(values: Any, field: str) -> None:
    if not isinstance(values, list):
        raise SchemaValidationError(f"{field} must be an array", field=field)
    for idx, value in enumerate(values):
        if not isinstance(value, str):
            raise SchemaValidationError(f"{field}[{idx}] must be a string", field=f"{field}[{idx}]")


def _validate_config(config: Any, field: str) -> None:
    if not isinstance(config, dict):
        raise SchemaValidationError(f"{field} must be a dictionary", field=field)

    if "error_values" in config:
        _validate_string_list(config["error_values"], f"{field}.error_values")
    if "custom_options" in config:
        _validate_string_list(config["custom_options"], f"{field}.custom_options")

    for bound in ("min", "max"):
        if config.get(bound) is not None and not _is_number(config[bound]):
            raise SchemaValidationError(f"{field}.{bound} must be a number", field=f"{field}.{bound}")

    if "error_outside_range" in config and not isinstance(config["error_outside_range"], bool):
        raise SchemaValidationError(
            f"{field}.error_outside_range must be a boolean",
            field=f"{field}.error_outside_range",
        )

    minimum = config.get("min")
    maximum = config.get("max")
    if minimum is not None and maximum is not None and minimum > maximum:
        raise SchemaValidationError(f"{field}.min must not exceed {field}.max", field=f"{field}.min")


def _validate_item(item: Any, field: str) -> None:
    if not isinstance(item, dict):
        raise SchemaValidationError(f"{field} must be a dictionary", field=field)

    missing = {"id", "description"} - set(item.keys())
    if missing:
        raise SchemaValidationError(f"{field} missing required fields: {sorted(missing)}", field=field)
    if not isinstance(item["id"], str) or not item["id"].strip():
        raise SchemaValidationError(f"{field}.id must be a non-empty string", field=f"{field}.id")
    if not isinstance(item["description"], str):
        raise SchemaValidationError(f"{field}.description must be a string", field=f"{field}.description")

    validation_type = item.get("validation_type", ValidationType.NONE.value)
    if validation_type not in VALID_VALIDATION_TYPES:
        raise SchemaValidationError(
            f"{field}.validation_type must be one of {sorted(VALID_VALIDATION_TYPES)}",
            field=f"{field}.validation_type",
        )
    behavior = item.get("validation_behavior", ValidationBehavior.NO_VALIDATION.value)
    if behavior not in VALID_VALIDATION_BEHAVIORS:
        raise SchemaValidationError(
            f"{field}.validation_behavior must be one of {sorted(VALID_VALIDATION_BEHAVIORS)}",
            field=f"{field}.validation_behavior",
        )
    if "is_required" in item and not isinstance(item["is_required"], bool):
        raise SchemaValidationError(f"{field}.is_required must be a boolean", field=f"{field}.is_required")

    if item.get("config") is not None:
        _validate_config(item["config"], f"{field}.config")


def validate_template_schema(payload: dict[str, Any]) -> None:
    """Validate a checklist template payload before it is stored.

    Item ids must be unique across the whole template, not only within a
    section. Raises SchemaValidationError if validation fails.
    """
    if not isinstance(payload, dict):
        raise SchemaValidationError("Template payload must be a dictionary")

    if "name" not in payload:
        raise SchemaValidationError("Missing required field: name")
    if not isinstance(payload["name"], str) or not payload["name"].strip():
        raise SchemaValidationError("name must be a non-empty string", field="name")
    if "id" in payload and not is_storage_id(payload["id"]):
        raise SchemaValidationError(
            "id may only contain letters, digits, underscores and hyphens",
            field="id",
        )

    resource_type = payload.get("resource_type")
    if resource_type is not None and resource_type not in VALID_RESOURCE_TYPES:
        raise SchemaValidationError(
            f"resource_type must be one of {sorted(VALID_RESOURCE_TYPES)}",
            field="resource_type",
        )

    if "sections" not in payload:
        raise SchemaValidationError("Missing required field: sections")
    if not isinstance(payload["sections"], list):
        raise SchemaValidationError("sections must be an array", field="sections")

    seen_item_ids: dict[str, str] = {}
    for s_idx, section in enumerate(payload["sections"]):
        section_field = f"sections[{s_idx}]"
        if not isinstance(section, dict):
            raise SchemaValidationError(f"{section_field} must be a dictionary", field=section_field)

        missing = {"id", "title", "items"} - set(section.keys())
        if missing:
            raise SchemaValidationError(
                f"{section_field} missing required fields: {sorted(missing)}",
                field=section_field,
            )
        if not isinstance(section["items"], list):
            raise SchemaValidationError(f"{section_field}.items must be an array", field=f"{section_field}.items")

        for i_idx, item in enumerate(section["items"]):
            item_field = f"{section_field}.items[{i_idx}]"
            _validate_item(item, item_field)
            item_id = item["id"]
            if item_id in seen_item_ids:
                raise SchemaValidationError(
                    f"{item_field}.id duplicates item id '{item_id}' already used at {seen_item_ids[item_id]}",
                    field=f"{item_field}.id",
                )
            seen_item_ids[item_id] = item_field
