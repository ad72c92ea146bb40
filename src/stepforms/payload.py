"""Storage envelope for compiled forms.

The persistence layer stores a compiled step graph as a JSON string in
``formPayload``, next to metadata it manages itself (``name``,
``description``, ``category``, ``isActive``). This module converts between
that envelope and :class:`~stepforms.steps.FormDefinition`; it performs no
I/O.

Example:
    ```python
    record = encode_form(compile_tree(tree), category=TemplateCategory.REAL_ESTATE)
    body = record.to_api_dict()        # POST this

    form = decode_form(stored_body)    # on load
    tree = load_tree(stored_body)      # straight back into the builder
    ```
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .decompiler import decompile_steps
from .exceptions import SerializationError
from .steps import FormDefinition
from .tree import TreeNode
from .validation import validate_payload

logger = logging.getLogger(__name__)


class TemplateCategory(str, Enum):
    """Form categories known to the storage API."""

    REAL_ESTATE = "REAL_ESTATE"
    EDUCATION = "EDUCATION"
    INSURANCE = "INSURANCE"
    HEALTHCARE = "HEALTHCARE"
    FINANCE = "FINANCE"
    ECOMMERCE = "ECOMMERCE"
    EVENTS = "EVENTS"
    TRAVEL = "TRAVEL"
    RESTAURANT = "RESTAURANT"
    AUTOMOBILE = "AUTOMOBILE"
    BEAUTY_WELLNESS = "BEAUTY_WELLNESS"
    LEGAL = "LEGAL"
    CONSTRUCTION = "CONSTRUCTION"
    NON_PROFIT = "NON_PROFIT"
    TECHNOLOGY = "TECHNOLOGY"
    HOSPITAL = "HOSPITAL"
    GENERIC = "GENERIC"

    @property
    def category_id(self) -> int:
        """0-based numeric id used by the storage API."""
        return list(TemplateCategory).index(self)

    @classmethod
    def from_id(cls, category_id: int) -> TemplateCategory:
        """Map a numeric id back to a category; unknown ids map to GENERIC."""
        members = list(cls)
        if isinstance(category_id, int) and 0 <= category_id < len(members):
            return members[category_id]
        return cls.GENERIC

    @classmethod
    def coerce(cls, value: TemplateCategory | str | int | None) -> TemplateCategory:
        """Accept a category, its name or its numeric id; default GENERIC."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or value is None:
            return cls.GENERIC
        if isinstance(value, int):
            return cls.from_id(value)
        try:
            return cls(str(value).upper())
        except ValueError:
            logger.debug("Unknown template category %r, using GENERIC", value)
            return cls.GENERIC


@dataclass(frozen=True)
class FormRecord:
    """A stored form as exchanged with the storage API.

    Attributes:
        name: Form name.
        description: Form description.
        category: Template category.
        form_payload: The serialized step graph (JSON string).
        is_active: Whether the form is published.
        id: Storage id, None for forms not yet saved.
    """

    name: str
    description: str
    category: TemplateCategory
    form_payload: str
    is_active: bool = True
    id: int | str | None = None

    def to_api_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "category": self.category.category_id,
            "formPayload": self.form_payload,
            "isActive": self.is_active,
        }
        if self.id is not None:
            d["id"] = self.id
        return d

    @classmethod
    def from_api_dict(cls, data: dict[str, Any]) -> FormRecord:
        """Build a record from a storage API body.

        Raises:
            SerializationError: If ``formPayload`` is missing.
        """
        if "formPayload" not in data:
            raise SerializationError(
                "Form record is missing 'formPayload'",
                context={"keys": sorted(data)},
            )
        payload = data["formPayload"]
        # Some exports embed the step graph as an object rather than a string
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            category=TemplateCategory.coerce(data.get("category")),
            form_payload=payload,
            is_active=bool(data.get("isActive", True)),
            id=data.get("id"),
        )


def encode_form(
    form: FormDefinition,
    category: TemplateCategory | str | int = TemplateCategory.GENERIC,
    is_active: bool = True,
    record_id: int | str | None = None,
) -> FormRecord:
    """Wrap a compiled form in a storage record."""
    return FormRecord(
        name=form.name,
        description=form.description,
        category=TemplateCategory.coerce(category),
        form_payload=form.to_json(),
        is_active=is_active,
        id=record_id,
    )


FormSource = Union[FormRecord, dict, str]


def decode_form(source: FormSource) -> FormDefinition:
    """Decode the step graph stored in a record.

    Args:
        source: A :class:`FormRecord`, a storage API body dict, or the bare
            ``formPayload`` JSON string.

    Returns:
        The decoded form. Name and description missing from the payload are
        taken from the record.

    Raises:
        SerializationError: If the payload is not JSON or does not match the
            step graph schema.
    """
    record: FormRecord | None = None
    if isinstance(source, FormRecord):
        record = source
    elif isinstance(source, dict):
        record = FormRecord.from_api_dict(source)
    text = record.form_payload if record is not None else source

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SerializationError(
            "formPayload is not valid JSON",
            context={"format": "json", "error": str(e)},
        ) from e

    result = validate_payload(data)
    if not result.valid:
        raise SerializationError(
            "formPayload does not match the step graph schema",
            context={"errors": result.errors},
        )

    if record is not None:
        data.setdefault("name", record.name)
        data.setdefault("description", record.description)
    return FormDefinition.from_dict(data)


def load_tree(source: FormSource) -> TreeNode | None:
    """Decode a stored form and rebuild its option tree for editing.

    Undecodable or malformed payloads open as an empty tree (None), with a
    warning logged.
    """
    try:
        form = decode_form(source)
    except SerializationError as e:
        logger.warning("Cannot decode stored form, opening empty tree: %s", e)
        return None
    return decompile_steps(form)
