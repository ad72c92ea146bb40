"""Compiler configuration.

Everything the forward compiler writes that is not derived from the tree
itself (titles, the entry field, the terminal contact step, messages) lives
in :class:`CompilerConfig`. The defaults reproduce the builder's stock output;
deployments can override them from a dict or a YAML file.

Example:
    ```yaml
    # compiler.yaml
    final_step_title: Contact details
    success_message_template: "Thanks! An agent will call you about {label_lower}."
    final_fields:
      - {fieldId: name, type: text, label: Full name, required: true}
      - {fieldId: email, type: email, label: Email, required: true}
    ```

    ```python
    config = CompilerConfig.from_file("compiler.yaml")
    form = compile_tree(tree, config=config)
    ```
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError, SerializationError
from .steps import FieldType, FormField

logger = logging.getLogger(__name__)

DEFAULT_FINAL_FIELDS: tuple[FormField, ...] = (
    FormField(field_id="name", type=FieldType.TEXT, label="Your Name", required=True),
    FormField(field_id="email", type=FieldType.EMAIL, label="Email Address", required=True),
    FormField(field_id="phone", type=FieldType.TEXT, label="Phone Number", required=True),
    FormField(field_id="message", type=FieldType.TEXT, label="Additional Message", required=False),
)


@dataclass(frozen=True)
class CompilerConfig:
    """Configuration for the tree-to-steps compiler.

    Templates are formatted with ``label`` (the node or root label) and
    ``label_lower`` (the same, lower-cased).

    Attributes:
        entry_field_id: Field id of the entry step's selector.
        entry_field_label: Label of the entry step's selector.
        branch_title_template: Title of a step generated for a branch node.
        branch_field_label_template: Label of a branch step's selector.
        final_step_title: Title of the terminal contact-details step.
        final_fields: Fields collected on the terminal step.
        description_template: Form description derived from the root label.
        success_message_template: Success message derived from the root label.
        untitled_name: Form name used when the tree is empty.
        empty_description: Description used when the tree has no options.
        empty_success_message: Success message used when the tree has no options.
    """

    entry_field_id: str = "main_selection"
    entry_field_label: str = "Choose an option"
    branch_title_template: str = "Choose {label} Type"
    branch_field_label_template: str = "Select {label} option"
    final_step_title: str = "Your Details"
    final_fields: tuple[FormField, ...] = DEFAULT_FINAL_FIELDS
    description_template: str = "Find the best {label_lower} for you"
    success_message_template: str = "Thanks! We'll recommend the best {label_lower} for you."
    untitled_name: str = "Untitled Form"
    empty_description: str = "Form created with dynamic form builder"
    empty_success_message: str = "Thank you for your submission!"

    @classmethod
    def defaults(cls) -> CompilerConfig:
        """Create a ``CompilerConfig`` with the stock builder output."""
        return cls()

    @staticmethod
    def format(template: str, label: str) -> str:
        """Fill ``template`` from a label."""
        return template.format(label=label, label_lower=label.lower())

    def to_dict(self) -> dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}
        d["final_fields"] = [f.to_dict() for f in self.final_fields]
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CompilerConfig:
        """Build a config from a settings dict.

        Missing keys fall back to defaults.

        Args:
            data: Dict with any of the attribute names as keys; ``final_fields``
                is a list of field dicts in the step-graph JSON shape.

        Returns:
            A new ``CompilerConfig`` instance.

        Raises:
            ConfigurationError: If the dict has unknown keys or invalid fields.
        """
        if not data:
            return cls.defaults()
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Compiler configuration must be a mapping",
                context={"type": type(data).__name__},
            )

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown compiler configuration key(s): {', '.join(unknown)}",
                context={"unknown_keys": unknown, "available_keys": sorted(known)},
            )

        values = dict(data)
        if "final_fields" in values:
            try:
                values["final_fields"] = tuple(
                    FormField.from_dict(f) for f in values["final_fields"] or ()
                )
            except SerializationError as e:
                raise ConfigurationError(
                    f"Invalid final_fields: {e}", context=e.context
                ) from e
            if not values["final_fields"]:
                raise ConfigurationError(
                    "final_fields must contain at least one field",
                    context={"config_key": "final_fields"},
                )
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> CompilerConfig:
        """Load a config from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or not a mapping.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigurationError(
                "Compiler configuration file not found",
                context={"path": str(file_path)},
            )
        with file_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
        logger.debug("Loaded compiler configuration from %s", file_path)
        return cls.from_dict(data)
