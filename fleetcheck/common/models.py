"""Shared pydantic models and enums for fleetcheck."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now() -> datetime:
    return datetime.now(UTC)


class ValidationType(str, Enum):
    NONE = "none"
    YES_NO = "yes_no"
    YES_NO_NA = "yes_no_na"
    MIN_MAX = "min_max"
    QUANTITY = "quantity"
    GOOD_FAIR_POOR = "good_fair_poor"
    CUSTOM = "custom"


NUMERIC_VALIDATION_TYPES = frozenset({ValidationType.MIN_MAX, ValidationType.QUANTITY})


class ValidationBehavior(str, Enum):
    RAISES_ERROR = "raises_error"
    RAISES_WARNING = "raises_warning"
    NO_VALIDATION = "no_validation"


class VerdictKind(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    CORRECT = "correct"


class LifecycleState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self is not LifecycleState.IN_PROGRESS


class ResourceType(str, Enum):
    VEHICLE = "vehicle"
    DRIVER = "driver"
    UNIT = "unit"
    MACHINE = "machine"
    SECTOR = "sector"


class ItemStatus(str, Enum):
    PENDING = "pending"
    ERROR = "error"
    WARNING = "warning"
    CORRECT = "correct"


class ValidationConfig(BaseModel):
    """Validation settings of an item; only the fields relevant to its type are read."""

    error_values: list[str] = Field(default_factory=list)
    min: int | float | None = None
    max: int | float | None = None
    error_outside_range: bool = False
    custom_options: list[str] = Field(default_factory=list)


class Item(BaseModel):
    id: str = Field(min_length=1)
    description: str
    long_description: str | None = None
    validation_type: ValidationType = ValidationType.NONE
    validation_behavior: ValidationBehavior = ValidationBehavior.NO_VALIDATION
    is_required: bool = False
    config: ValidationConfig | None = None
    order: int | None = None


class Section(BaseModel):
    id: str = Field(min_length=1)
    title: str
    items: list[Item] = Field(default_factory=list)
    order: int | None = None


class Template(BaseModel):
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    version: str = "1.0"
    resource_type: ResourceType | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sections: list[Section] = Field(default_factory=list)

    @model_validator(mode="after")
    def _item_ids_unique(self) -> Template:
        seen: set[str] = set()
        for _, item in self.iter_items():
            if item.id in seen:
                raise ValueError(f"Duplicate item id across template: {item.id}")
            seen.add(item.id)
        return self

    def iter_items(self) -> Iterator[tuple[Section, Item]]:
        """Yield (section, item) pairs in template order."""
        for section in self.sections:
            for item in section.items:
                yield section, item

    def find_item(self, item_id: str) -> tuple[Section, Item] | None:
        for section, item in self.iter_items():
            if item.id == item_id:
                return section, item
        return None

    @property
    def item_count(self) -> int:
        return sum(len(section.items) for section in self.sections)


class ItemSnapshot(Item):
    """Copy of an item definition taken when it was answered."""

    model_config = ConfigDict(frozen=True)

    section_id: str | None = None
    section_title: str | None = None


class ValidationResult(BaseModel):
    kind: VerdictKind
    message: str = ""


class ResponseValidation(ValidationResult):
    timestamp: datetime = Field(default_factory=_now)


class ResponseMetadata(BaseModel):
    user: str | None = None
    device: str | None = None
    template_version: str | None = None
    is_edited: bool = False
    edited_timestamp: datetime | None = None


class Response(BaseModel):
    value: str = ""
    note: str = ""
    timestamp: datetime = Field(default_factory=_now)
    item_snapshot: ItemSnapshot | None = None
    validation: ResponseValidation | None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ValidationEntry(BaseModel):
    """Per-item verdict as surfaced to the UI."""

    item: str
    message: str
    item_id: str
    section: str | None = None


class ValidationSummary(BaseModel):
    errors: list[ValidationEntry] = Field(default_factory=list)
    warnings: list[ValidationEntry] = Field(default_factory=list)
    correct: list[ValidationEntry] = Field(default_factory=list)

    def bucket(self, kind: VerdictKind) -> list[ValidationEntry]:
        if kind is VerdictKind.ERROR:
            return self.errors
        if kind is VerdictKind.WARNING:
            return self.warnings
        return self.correct


class Progress(BaseModel):
    total_items: int = 0
    completed_items: int = 0
    percent_complete: int = Field(default=0, ge=0, le=100)
    missing_item_descriptions: list[str] = Field(default_factory=list)


class ChecklistFormData(BaseModel):
    resource_info: dict[str, Any] | None = None
    resource_type: ResourceType | None = None


class ChecklistRecord(BaseModel):
    """Mutable fields of a checklist, as handed to the checklist store."""

    template_id: str
    effective_date: datetime
    form_data: ChecklistFormData = Field(default_factory=ChecklistFormData)
    responses: dict[str, Response] = Field(default_factory=dict)
    notes: dict[str, str] = Field(default_factory=dict)
    validation_summary: ValidationSummary = Field(default_factory=ValidationSummary)
    total_items: int = 0
    completed_items: int = 0
    error_count: int = 0
    warning_count: int = 0
    correct_count: int = 0
    percent_complete: int = 0
    lifecycle_state: LifecycleState = LifecycleState.IN_PROGRESS
    requires_review: bool = False
    updated_by: str | None = None


class Checklist(ChecklistRecord):
    id: str
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None


class FinalizeResult(BaseModel):
    checklist: Checklist | None = None
    success: bool
    message: str
    missing_required: list[str] = Field(default_factory=list)
    error_count: int = 0


class ItemValidationRequest(BaseModel):
    item: Item
    value: str = ""


class ChecklistEvaluationRequest(BaseModel):
    template_id: str | None = None
    template: Template | None = None
    responses: dict[str, Response] = Field(default_factory=dict)


class ChecklistSubmitRequest(ChecklistEvaluationRequest):
    checklist_id: str | None = None
    form_data: ChecklistFormData = Field(default_factory=ChecklistFormData)
    notes: dict[str, str] = Field(default_factory=dict)
    effective_date: datetime | None = None


class ApiError(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: dict[str, Any] = Field(default_factory=dict)
