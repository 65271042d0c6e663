"""Predefined checklist templates."""

from .predefined import (
    CATALOG_NAMES,
    find_predefined_template,
    get_template,
    list_templates,
)

__all__ = [
    "CATALOG_NAMES",
    "find_predefined_template",
    "get_template",
    "list_templates",
]
