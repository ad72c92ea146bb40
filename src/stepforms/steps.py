"""Step graph: the flat storage and runtime representation of a form.

A form is an ordered list of steps. Each step holds fields; each option of a
choice field names the step shown next through ``nextFieldId`` (or
``nextStepId``), using the reserved id ``step_final`` for the terminal
contact-details step. The first step is always ``step1``.

All classes are frozen dataclasses that convert to and from the camelCase
JSON shapes stored by the persistence layer.

Example:
    ```python
    form = FormDefinition.from_json(payload)
    entry = form.entry_step
    for option in entry.fields[0].options:
        print(option.label, "->", option.target)

    print(form.to_yaml())
    ```
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml

from .exceptions import SerializationError


ENTRY_STEP_ID = "step1"
FINAL_STEP_ID = "step_final"


class FieldType(str, Enum):
    """Closed set of field types understood by the compilers and navigator."""

    IMAGE_SELECT = "image_select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    CHECKBOXES = "checkboxes"
    DROPDOWN = "dropdown"
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    TEXT_AREA = "text_area"
    FILE_UPLOAD = "file_upload"
    IMAGE_UPLOAD = "image_upload"

    @property
    def is_choice(self) -> bool:
        """True for fields whose answer is picked from ``options``."""
        return self in _CHOICE_TYPES

    @property
    def is_multiple(self) -> bool:
        """True for multi-select (checkbox) fields."""
        return self in _MULTIPLE_TYPES


_CHOICE_TYPES = frozenset({
    FieldType.IMAGE_SELECT,
    FieldType.RADIO,
    FieldType.CHECKBOX,
    FieldType.CHECKBOXES,
    FieldType.DROPDOWN,
})
_MULTIPLE_TYPES = frozenset({FieldType.CHECKBOX, FieldType.CHECKBOXES})


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise SerializationError(
            f"{kind} is missing required key '{key}'",
            context={"kind": kind, "keys": sorted(data)},
        ) from None


@dataclass(frozen=True)
class FieldOption:
    """One selectable option of a choice field.

    Attributes:
        option_id: Option identifier (the tree node id it was compiled from).
        label: Display text.
        value: Slug stored as the field's answer.
        image_url: Image shown for the option, empty string when none.
        next_field_id: Step to show when this option is chosen, or
            ``step_final``.
        next_step_id: Alternative explicit target used by hand-built forms.
    """

    option_id: str
    label: str
    value: str
    image_url: str = ""
    next_field_id: str | None = None
    next_step_id: str | None = None

    @property
    def target(self) -> str | None:
        """The step this option leads to, preferring ``next_step_id``."""
        return self.next_step_id or self.next_field_id

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "optionId": self.option_id,
            "label": self.label,
            "value": self.value,
            "imageUrl": self.image_url,
        }
        if self.next_field_id is not None:
            d["nextFieldId"] = self.next_field_id
        if self.next_step_id is not None:
            d["nextStepId"] = self.next_step_id
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldOption:
        return cls(
            option_id=str(_require(data, "optionId", "option")),
            label=data.get("label", ""),
            value=data.get("value", ""),
            image_url=data.get("imageUrl") or "",
            next_field_id=data.get("nextFieldId") or None,
            next_step_id=data.get("nextStepId") or None,
        )


@dataclass(frozen=True)
class FormField:
    """A field of a step, possibly with options and nested sub-fields."""

    field_id: str
    type: FieldType
    label: str
    required: bool = True
    options: tuple[FieldOption, ...] = ()
    sub_fields: tuple[FormField, ...] = ()
    image_url: str | None = None

    def find_option(self, value: str) -> FieldOption | None:
        """Return the option whose ``value`` equals ``value``, if any."""
        return next((o for o in self.options if o.value == value), None)

    def find_sub_field(self, field_id: str) -> FormField | None:
        return next((f for f in self.sub_fields if f.field_id == field_id), None)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "fieldId": self.field_id,
            "type": self.type.value,
            "label": self.label,
            "required": self.required,
        }
        if self.options or self.type.is_choice:
            d["options"] = [o.to_dict() for o in self.options]
        if self.sub_fields:
            d["subFields"] = [f.to_dict() for f in self.sub_fields]
        if self.image_url is not None:
            d["imageUrl"] = self.image_url
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormField:
        raw_type = _require(data, "type", "field")
        try:
            field_type = FieldType(raw_type)
        except ValueError as e:
            raise SerializationError(
                f"Unknown field type '{raw_type}'",
                context={"field_id": data.get("fieldId"), "type": raw_type},
            ) from e
        return cls(
            field_id=str(_require(data, "fieldId", "field")),
            type=field_type,
            label=data.get("label", ""),
            required=bool(data.get("required", True)),
            options=tuple(FieldOption.from_dict(o) for o in data.get("options") or ()),
            sub_fields=tuple(cls.from_dict(f) for f in data.get("subFields") or ()),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class StepCondition:
    """Explicit branch: go to ``next_step_id`` when ``field_id`` equals ``value``."""

    field_id: str
    value: str
    next_step_id: str

    def matches(self, answers: dict[str, Any]) -> bool:
        answer = answers.get(self.field_id)
        if isinstance(answer, list):
            return self.value in answer
        return answer == self.value

    def to_dict(self) -> dict[str, Any]:
        return {"fieldId": self.field_id, "value": self.value, "nextStepId": self.next_step_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepCondition:
        return cls(
            field_id=str(_require(data, "fieldId", "condition")),
            value=data.get("value", ""),
            next_step_id=str(_require(data, "nextStepId", "condition")),
        )


@dataclass(frozen=True)
class FormStep:
    """One screen of the form."""

    step_id: str
    title: str
    fields: tuple[FormField, ...] = ()
    description: str | None = None
    is_last_step: bool = False
    next_step_conditions: tuple[StepCondition, ...] = ()

    def get_field(self, field_id: str) -> FormField | None:
        return next((f for f in self.fields if f.field_id == field_id), None)

    def get_nested_field(self, path: list[str]) -> FormField | None:
        """Follow ``path`` of field ids through nested sub-fields."""
        if not path:
            return None
        current = self.get_field(path[0])
        for field_id in path[1:]:
            if current is None:
                return None
            current = current.find_sub_field(field_id)
        return current

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "stepId": self.step_id,
            "title": self.title,
            "fields": [f.to_dict() for f in self.fields],
        }
        if self.description is not None:
            d["description"] = self.description
        if self.is_last_step:
            d["isLastStep"] = True
        if self.next_step_conditions:
            d["nextStepCondition"] = [c.to_dict() for c in self.next_step_conditions]
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormStep:
        return cls(
            step_id=str(_require(data, "stepId", "step")),
            title=data.get("title", ""),
            fields=tuple(FormField.from_dict(f) for f in data.get("fields") or ()),
            description=data.get("description"),
            is_last_step=bool(data.get("isLastStep", False)),
            next_step_conditions=tuple(
                StepCondition.from_dict(c) for c in data.get("nextStepCondition") or ()
            ),
        )


@dataclass(frozen=True)
class FormSettings:
    """Form-level settings carried alongside the steps."""

    success_message: str
    submit_button_text: str | None = None
    redirect_url: str | None = None
    show_progress_bar: bool | None = None
    allow_multiple_submissions: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"successMessage": self.success_message}
        if self.submit_button_text is not None:
            d["submitButtonText"] = self.submit_button_text
        if self.redirect_url is not None:
            d["redirectUrl"] = self.redirect_url
        if self.show_progress_bar is not None:
            d["showProgressBar"] = self.show_progress_bar
        if self.allow_multiple_submissions is not None:
            d["allowMultipleSubmissions"] = self.allow_multiple_submissions
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FormSettings:
        data = data or {}
        return cls(
            success_message=data.get("successMessage", ""),
            submit_button_text=data.get("submitButtonText"),
            redirect_url=data.get("redirectUrl"),
            show_progress_bar=data.get("showProgressBar"),
            allow_multiple_submissions=data.get("allowMultipleSubmissions"),
        )


@dataclass(frozen=True)
class FormDefinition:
    """A compiled form: name, description, ordered steps and settings."""

    name: str
    description: str = ""
    steps: tuple[FormStep, ...] = ()
    settings: FormSettings = field(default_factory=lambda: FormSettings(success_message=""))

    @property
    def step_ids(self) -> list[str]:
        return [s.step_id for s in self.steps]

    def get_step(self, step_id: str) -> FormStep | None:
        """Return the step with ``step_id``, or None."""
        return next((s for s in self.steps if s.step_id == step_id), None)

    def step_index(self, step_id: str) -> int:
        """Document-order index of ``step_id``, or -1 if absent."""
        for idx, step in enumerate(self.steps):
            if step.step_id == step_id:
                return idx
        return -1

    @property
    def entry_step(self) -> FormStep | None:
        return self.get_step(ENTRY_STEP_ID)

    @property
    def last_step(self) -> FormStep | None:
        """The step flagged ``is_last_step``, falling back to ``step_final``."""
        flagged = next((s for s in self.steps if s.is_last_step), None)
        return flagged or self.get_step(FINAL_STEP_ID)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "steps": [s.to_dict() for s in self.steps],
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormDefinition:
        if not isinstance(data, dict):
            raise SerializationError(
                "Step graph must be a JSON object",
                context={"type": type(data).__name__},
            )
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            steps=tuple(FormStep.from_dict(s) for s in data.get("steps") or ()),
            settings=FormSettings.from_dict(data.get("settings")),
        )

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> FormDefinition:
        """Parse a serialized step graph.

        Raises:
            SerializationError: If ``text`` is not valid JSON or lacks
                required keys.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(
                "Step graph is not valid JSON",
                context={"format": "json", "error": str(e)},
            ) from e
        return cls.from_dict(data)

    def to_yaml(self) -> str:
        """Serialize as YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
