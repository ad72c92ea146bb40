"""Step graph validation.

Two layers of checks:

* :func:`validate_payload` checks the *shape* of a raw step-graph dict
  against :data:`STEP_GRAPH_SCHEMA` with ``jsonschema``.
* :func:`validate_form` checks the graph *invariants* of a decoded
  :class:`~stepforms.steps.FormDefinition`: unique step ids, the entry step,
  a single terminal step, and resolvable option targets.

Example:
    ```python
    from stepforms.validation import validate_form

    result = validate_form(form)
    if not result.valid:
        for error in result.errors:
            print(f"Error: {error}")
    ```
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import jsonschema

from .exceptions import InvalidStepGraphError
from .steps import ENTRY_STEP_ID, FINAL_STEP_ID, FormDefinition

logger = logging.getLogger(__name__)

STEP_GRAPH_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["steps"],
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
        "steps": {"type": "array", "items": {"$ref": "#/definitions/step"}},
        "settings": {
            "type": "object",
            "properties": {"successMessage": {"type": "string"}},
        },
    },
    "definitions": {
        "option": {
            "type": "object",
            "required": ["optionId", "label", "value"],
            "properties": {
                "optionId": {"type": "string"},
                "label": {"type": "string"},
                "value": {"type": "string"},
                "imageUrl": {"type": ["string", "null"]},
                "nextFieldId": {"type": ["string", "null"]},
                "nextStepId": {"type": ["string", "null"]},
            },
        },
        "field": {
            "type": "object",
            "required": ["fieldId", "type", "label"],
            "properties": {
                "fieldId": {"type": "string"},
                "type": {"type": "string"},
                "label": {"type": "string"},
                "required": {"type": "boolean"},
                "options": {
                    "type": ["array", "null"],
                    "items": {"$ref": "#/definitions/option"},
                },
                "subFields": {
                    "type": ["array", "null"],
                    "items": {"$ref": "#/definitions/field"},
                },
            },
        },
        "condition": {
            "type": "object",
            "required": ["fieldId", "value", "nextStepId"],
            "properties": {
                "fieldId": {"type": "string"},
                "value": {"type": "string"},
                "nextStepId": {"type": "string"},
            },
        },
        "step": {
            "type": "object",
            "required": ["stepId", "title", "fields"],
            "properties": {
                "stepId": {"type": "string"},
                "title": {"type": "string"},
                "fields": {"type": "array", "items": {"$ref": "#/definitions/field"}},
                "isLastStep": {"type": "boolean"},
                "nextStepCondition": {
                    "type": ["array", "null"],
                    "items": {"$ref": "#/definitions/condition"},
                },
            },
        },
    },
}


@dataclass
class ValidationResult:
    """Result of validating a step graph.

    Attributes:
        valid: Whether the graph passed validation.
        errors: List of error messages (validation failures).
        warnings: List of warning messages (non-blocking issues).
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Merge another validation result into this one.

        The merged result is valid only if both results are valid.
        """
        return ValidationResult(
            valid=self.valid and other.valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )

    @classmethod
    def ok(cls) -> ValidationResult:
        """Create a successful validation result."""
        return cls(valid=True)

    @classmethod
    def error(cls, message: str) -> ValidationResult:
        """Create a failed validation result with a single error."""
        return cls(valid=False, errors=[message])

    @classmethod
    def warning(cls, message: str) -> ValidationResult:
        """Create a successful validation result with a warning."""
        return cls(valid=True, warnings=[message])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "valid": self.valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def validate_payload(data: Any) -> ValidationResult:
    """Check a raw step-graph dict against :data:`STEP_GRAPH_SCHEMA`."""
    validator = jsonschema.Draft7Validator(STEP_GRAPH_SCHEMA)
    result = ValidationResult.ok()
    for err in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        location = "/".join(str(p) for p in err.absolute_path) or "<root>"
        result = result.merge(ValidationResult.error(f"{location}: {err.message}"))
    return result


def validate_form(form: FormDefinition) -> ValidationResult:
    """Check the structural invariants of a step graph.

    Errors:
        * duplicate step ids
        * missing entry step (for a non-empty graph)
        * zero or several steps flagged ``is_last_step``
        * a non-terminal step using the reserved ``step_final`` id
        * duplicate field ids within a step
        * option or condition targets that resolve to no step

    Warnings:
        * steps unreachable from the entry step
        * choice fields without options
        * a terminal step whose options lead elsewhere
    """
    result = ValidationResult.ok()
    if not form.steps:
        return result

    step_ids = set()
    for step in form.steps:
        if step.step_id in step_ids:
            result = result.merge(
                ValidationResult.error(f"Duplicate step id: '{step.step_id}'")
            )
        step_ids.add(step.step_id)

    if ENTRY_STEP_ID not in step_ids:
        result = result.merge(
            ValidationResult.error(f"Form has no entry step '{ENTRY_STEP_ID}'")
        )

    last_steps = [s.step_id for s in form.steps if s.is_last_step]
    if len(last_steps) == 0:
        result = result.merge(ValidationResult.error("Form has no step marked isLastStep"))
    elif len(last_steps) > 1:
        result = result.merge(
            ValidationResult.error(f"Form has multiple last steps: {last_steps}")
        )

    for step in form.steps:
        if step.step_id == FINAL_STEP_ID and not step.is_last_step:
            result = result.merge(
                ValidationResult.error(
                    f"Reserved id '{FINAL_STEP_ID}' used by a step that is not the last step"
                )
            )

        seen_fields: set[str] = set()
        for form_field in step.fields:
            if form_field.field_id in seen_fields:
                result = result.merge(
                    ValidationResult.error(
                        f"Step '{step.step_id}' has duplicate field id "
                        f"'{form_field.field_id}'"
                    )
                )
            seen_fields.add(form_field.field_id)

            if form_field.type.is_choice and not form_field.options:
                result = result.merge(
                    ValidationResult.warning(
                        f"Field '{form_field.field_id}' on step '{step.step_id}' "
                        f"is a {form_field.type.value} field without options"
                    )
                )

            for option in form_field.options:
                target = option.target
                if target is None or target == FINAL_STEP_ID:
                    continue
                if target not in step_ids:
                    result = result.merge(
                        ValidationResult.error(
                            f"Option '{option.option_id}' on step '{step.step_id}' "
                            f"points to unknown step '{target}'"
                        )
                    )
                elif step.is_last_step:
                    result = result.merge(
                        ValidationResult.warning(
                            f"Last step '{step.step_id}' has option "
                            f"'{option.option_id}' leading to '{target}'"
                        )
                    )

        for condition in step.next_step_conditions:
            if condition.next_step_id != FINAL_STEP_ID and condition.next_step_id not in step_ids:
                result = result.merge(
                    ValidationResult.error(
                        f"Condition on step '{step.step_id}' points to unknown "
                        f"step '{condition.next_step_id}'"
                    )
                )

    if ENTRY_STEP_ID in step_ids and len(form.steps) > 1:
        reachable = find_reachable(form, ENTRY_STEP_ID)
        for step in form.steps:
            if step.step_id not in reachable:
                result = result.merge(
                    ValidationResult.warning(
                        f"Step '{step.step_id}' is not reachable from '{ENTRY_STEP_ID}'"
                    )
                )

    return result


def find_reachable(form: FormDefinition, start: str) -> set[str]:
    """Find all step ids reachable from ``start`` via BFS over option targets."""
    final_id = form.last_step.step_id if form.last_step is not None else FINAL_STEP_ID
    adjacency: dict[str, list[str]] = {}
    for step in form.steps:
        targets = [c.next_step_id for c in step.next_step_conditions]
        for form_field in step.fields:
            targets.extend(o.target for o in form_field.options if o.target)
        adjacency[step.step_id] = [final_id if t == FINAL_STEP_ID else t for t in targets]

    visited: set[str] = set()
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        for target in adjacency.get(current, []):
            if target not in visited:
                queue.append(target)
    return visited


def ensure_valid(form: FormDefinition) -> FormDefinition:
    """Validate ``form`` and return it unchanged.

    Warnings are logged.

    Raises:
        InvalidStepGraphError: If the graph has validation errors.
    """
    result = validate_form(form)
    if not result.valid:
        raise InvalidStepGraphError(result.errors)
    for warning in result.warnings:
        logger.warning("Step graph warning: %s", warning)
    return form
