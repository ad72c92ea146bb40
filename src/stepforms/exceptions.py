"""Exception hierarchy for stepforms.

Every error raised by this package derives from :class:`StepformsError`,
which carries an optional ``context`` dictionary describing the ids and
values involved. None of these errors are fatal: callers are expected to
discard the attempted transform, surface the message and let the author
retry.

Example:
    ```python
    from stepforms.exceptions import NodeNotFoundError, StepformsError

    try:
        tree = insert_child(tree, "missing", new_option(ids, "Condo"))
    except NodeNotFoundError as e:
        logger.warning("Cannot add item: %s (%s)", e, e.context)

    # Catch anything raised by stepforms
    try:
        form = compile_tree(tree)
    except StepformsError as e:
        logger.error("Compile failed: %s", e)
    ```
"""

from __future__ import annotations

from typing import Any


class StepformsError(Exception):
    """Base exception for all stepforms errors.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context (node ids, step ids, etc.)
        details: Alternative to context (both are supported)
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        # Details takes precedence if both are provided
        self.context = details or context or {}
        self.details = self.context


class ValidationError(StepformsError):
    """Raised when a tree, step graph or patch fails validation."""

    pass


class ConfigurationError(StepformsError):
    """Raised when compiler configuration is invalid or missing."""

    pass


class NotFoundError(StepformsError):
    """Raised when a requested node or step is not found."""

    pass


class OperationError(StepformsError):
    """Raised when an operation cannot be carried out."""

    pass


class SerializationError(StepformsError):
    """Raised when a stored payload cannot be decoded."""

    pass


class NodeNotFoundError(NotFoundError):
    """Raised when a mutation references a node id absent from the tree."""

    def __init__(self, node_id: str, operation: str):
        self.node_id = node_id
        self.operation = operation
        super().__init__(
            f"{operation}: node '{node_id}' not found",
            context={"node_id": node_id, "operation": operation},
        )


class DuplicateNodeError(ValidationError):
    """Raised when inserting a node would duplicate an existing id."""

    def __init__(self, duplicate_ids: list[str], parent_id: str):
        self.duplicate_ids = duplicate_ids
        self.parent_id = parent_id
        super().__init__(
            f"Cannot insert under '{parent_id}': ids already in tree: "
            f"{', '.join(duplicate_ids)}",
            context={"duplicate_ids": duplicate_ids, "parent_id": parent_id},
        )


class InvalidNodeError(ValidationError):
    """Raised when the forward compiler meets a node it cannot compile."""

    def __init__(self, node_id: str, reason: str):
        self.node_id = node_id
        self.reason = reason
        super().__init__(
            f"Node '{node_id}' cannot be compiled: {reason}",
            context={"node_id": node_id, "reason": reason},
        )


class MalformedStepGraphError(SerializationError):
    """Raised when a step graph cannot be turned back into a tree.

    Attributes:
        step_id: The step being processed when the problem was found, if any.
        reason: Short description of the problem.
    """

    def __init__(self, reason: str, step_id: str | None = None):
        self.step_id = step_id
        self.reason = reason
        message = (
            f"Malformed step graph at '{step_id}': {reason}"
            if step_id is not None
            else f"Malformed step graph: {reason}"
        )
        super().__init__(message, context={"step_id": step_id, "reason": reason})


class InvalidStepGraphError(ValidationError):
    """Raised by ``ensure_valid`` when a step graph violates its invariants."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Step graph validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors),
            context={"errors": errors},
        )


class UnknownTransitionError(OperationError):
    """Raised when a navigation target cannot be resolved to a step."""

    def __init__(self, from_step: str, target: str | None, field_id: str | None = None):
        self.from_step = from_step
        self.target = target
        self.field_id = field_id
        if target is None:
            message = f"{from_step}: no next step defined for field '{field_id}'"
        else:
            message = f"{from_step}: unknown target step '{target}'"
        super().__init__(
            message,
            context={"from_step": from_step, "target": target, "field_id": field_id},
        )


__all__ = [
    "StepformsError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
    "OperationError",
    "SerializationError",
    "NodeNotFoundError",
    "DuplicateNodeError",
    "InvalidNodeError",
    "MalformedStepGraphError",
    "InvalidStepGraphError",
    "UnknownTransitionError",
]
