"""Reverse compiler: step graph back to option tree.

Starting at the entry step ``step1``, each option becomes a tree node; when
an option leads to another step, that step's first field supplies the
node's children and its type decides ``allow_multiple``. Options leading to
``step_final`` (or nowhere) become leaves.

For any graph produced by :func:`stepforms.compiler.compile_tree`, this is
the exact inverse up to the root id, which the step graph does not record.

Saved forms come from outside the process and may be corrupt. By default a
malformed graph (missing entry step, dangling target, cyclic targets, a
branch step shared by two options, repeated option ids) is logged and
opened as an empty tree so the builder stays usable; pass ``strict=True``
to get the :class:`~stepforms.exceptions.MalformedStepGraphError` instead.

Option targets are read through :attr:`~stepforms.steps.FieldOption.target`,
the same rule navigation and validation use.
"""

from __future__ import annotations

import logging
from typing import Any

from .exceptions import MalformedStepGraphError, SerializationError
from .steps import ENTRY_STEP_ID, FINAL_STEP_ID, FieldOption, FormDefinition
from .tree import NodeKind, TreeNode

logger = logging.getLogger(__name__)

DEFAULT_ROOT_ID = "root-1"
DEFAULT_ROOT_LABEL = "Form"


def decompile_steps(
    form: FormDefinition | dict[str, Any],
    *,
    root_id: str = DEFAULT_ROOT_ID,
    strict: bool = False,
) -> TreeNode | None:
    """Rebuild the option tree from a step graph.

    Args:
        form: A decoded form or the raw step-graph dict.
        root_id: Id given to the synthetic root node.
        strict: Raise on malformed graphs instead of returning None.

    Returns:
        The root node, or None (an empty tree) when the graph has no usable
        entry step or, in non-strict mode, is malformed.

    Raises:
        MalformedStepGraphError: In strict mode, when the entry step is
            missing, a target does not resolve, targets form a cycle, a
            branch step is shared by two options, or option ids repeat.
    """
    try:
        if not isinstance(form, FormDefinition):
            try:
                form = FormDefinition.from_dict(form)
            except SerializationError as e:
                raise MalformedStepGraphError(str(e)) from e
        return _decompile(form, root_id)
    except MalformedStepGraphError as e:
        if strict:
            raise
        logger.warning("Opening malformed form as an empty tree: %s", e)
        return None


def _decompile(form: FormDefinition, root_id: str) -> TreeNode | None:
    if not form.steps:
        return None
    entry = form.get_step(ENTRY_STEP_ID)
    if entry is None:
        raise MalformedStepGraphError(f"no entry step '{ENTRY_STEP_ID}'")
    if not entry.fields or not entry.fields[0].options:
        logger.debug("Entry step has no options; form '%s' opens empty", form.name)
        return None

    steps = {step.step_id: step for step in form.steps}
    # Each branch step becomes exactly one subtree
    expanded: set[str] = set()

    def build_nodes(options: tuple[FieldOption, ...], path: frozenset[str]) -> tuple[TreeNode, ...]:
        return tuple(build_node(option, path) for option in options)

    def build_node(option: FieldOption, path: frozenset[str]) -> TreeNode:
        allow_multiple = False
        children: tuple[TreeNode, ...] = ()
        target = option.target
        if target and target != FINAL_STEP_ID:
            if target in path:
                raise MalformedStepGraphError(
                    f"option '{option.option_id}' leads back to '{target}'",
                    step_id=target,
                )
            next_step = steps.get(target)
            if next_step is None:
                raise MalformedStepGraphError(
                    f"option '{option.option_id}' points to unknown step",
                    step_id=target,
                )
            if next_step.fields and next_step.fields[0].options:
                if target in expanded:
                    raise MalformedStepGraphError(
                        f"option '{option.option_id}' leads to a step already "
                        "expanded under another option",
                        step_id=target,
                    )
                expanded.add(target)
                next_field = next_step.fields[0]
                allow_multiple = next_field.type.is_multiple
                children = build_nodes(next_field.options, path | {target})
        return TreeNode(
            id=option.option_id,
            label=option.label,
            kind=NodeKind.OPTION,
            allow_multiple=allow_multiple,
            image_url=option.image_url or None,
            is_expanded=True,
            children=children,
        )

    root = TreeNode(
        id=root_id,
        label=form.name or DEFAULT_ROOT_LABEL,
        kind=NodeKind.ROOT,
        allow_multiple=False,
        is_expanded=True,
        children=build_nodes(entry.fields[0].options, frozenset({ENTRY_STEP_ID})),
    )
    node_ids = root.ids()
    duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
    if duplicates:
        raise MalformedStepGraphError(f"option ids repeat: {', '.join(duplicates)}")
    logger.info("Decompiled form '%s' into a tree of %d nodes", form.name, len(node_ids))
    return root
