"""Forward compiler: option tree to step graph.

The tree is walked depth-first. The root's direct children become the
options of the entry step ``step1``; every other node with children gets a
step of its own whose options are its children; every leaf becomes an option
pointing at the shared terminal step ``step_final``.

Step ids combine a running counter with the node id (``step2_<id>``,
``step3_<id>``, ...), so two nodes with the same label still get distinct
steps, and compiling the same tree twice gives the same graph. Counters are
allocated when a node is entered (pre-order) while the step itself is
appended once all of its children have been compiled, so a branch step
follows the steps of its descendants in the output list.

Example:
    ```python
    # Real Estate -> Vehicles -> (Car -> (Sedan, SUV), Bike)
    form = compile_tree(tree)
    [s.step_id for s in form.steps]
    # ['step1', 'step3_car', 'step2_vehicles', 'step_final']
    ```
"""

from __future__ import annotations

import logging

from .config import CompilerConfig
from .exceptions import InvalidNodeError
from .ids import slugify
from .steps import (
    ENTRY_STEP_ID,
    FINAL_STEP_ID,
    FieldOption,
    FieldType,
    FormDefinition,
    FormField,
    FormSettings,
    FormStep,
)
from .tree import TreeNode

logger = logging.getLogger(__name__)

# step1 is reserved for the root's children
FIRST_BRANCH_STEP_NUMBER = 2


class TreeCompiler:
    """Compiles option trees into :class:`~stepforms.steps.FormDefinition`.

    A compiler instance holds only configuration; each :meth:`compile` call
    uses its own step counter and output list, so one instance may be reused
    (and shared) freely.

    Args:
        config: Titles, labels and terminal fields to emit. Defaults to
            :meth:`CompilerConfig.defaults`.
    """

    def __init__(self, config: CompilerConfig | None = None) -> None:
        self._config = config or CompilerConfig.defaults()

    @property
    def config(self) -> CompilerConfig:
        return self._config

    def compile(self, tree: TreeNode | None) -> FormDefinition:
        """Compile ``tree`` into a step graph.

        Args:
            tree: Root of the option tree, or None for an empty tree.

        Returns:
            The compiled form. A tree whose root has no children compiles to
            a form with no steps.

        Raises:
            InvalidNodeError: If a node has children that all lack labels.
        """
        cfg = self._config
        if tree is None or not tree.children:
            return FormDefinition(
                name=(tree.label if tree is not None else "") or cfg.untitled_name,
                description=cfg.empty_description,
                steps=(),
                settings=FormSettings(success_message=cfg.empty_success_message),
            )

        branch_steps: list[FormStep] = []
        counter = [FIRST_BRANCH_STEP_NUMBER]

        def compile_node(node: TreeNode) -> str:
            if node.is_leaf:
                return FINAL_STEP_ID

            step_id = f"step{counter[0]}_{node.id}"
            counter[0] += 1
            field_type = FieldType.CHECKBOX if node.allow_multiple else FieldType.RADIO
            step = FormStep(
                step_id=step_id,
                title=cfg.format(cfg.branch_title_template, node.label),
                fields=(
                    FormField(
                        field_id=f"{node.id}_selection",
                        type=field_type,
                        label=cfg.format(cfg.branch_field_label_template, node.label),
                        required=True,
                        options=compile_options(node),
                    ),
                ),
            )
            branch_steps.append(step)
            logger.debug(
                "Compiled node '%s' into step '%s' (%s, %d options)",
                node.id, step_id, field_type.value, node.num_children,
            )
            return step_id

        def compile_options(node: TreeNode) -> tuple[FieldOption, ...]:
            _check_labels(node)
            # Children are compiled before the option that references them
            return tuple(
                FieldOption(
                    option_id=child.id,
                    label=child.label,
                    value=slugify(child.label),
                    image_url=child.image_url or "",
                    next_field_id=compile_node(child),
                )
                for child in node.children
            )

        entry_step = FormStep(
            step_id=ENTRY_STEP_ID,
            title=tree.label,
            fields=(
                FormField(
                    field_id=cfg.entry_field_id,
                    type=FieldType.IMAGE_SELECT,
                    label=cfg.entry_field_label,
                    required=True,
                    options=compile_options(tree),
                ),
            ),
        )
        final_step = FormStep(
            step_id=FINAL_STEP_ID,
            title=cfg.final_step_title,
            fields=cfg.final_fields,
            is_last_step=True,
        )
        steps = (entry_step, *branch_steps, final_step)

        logger.info("Compiled form '%s' into %d steps", tree.label, len(steps))
        return FormDefinition(
            name=tree.label,
            description=cfg.format(cfg.description_template, tree.label),
            steps=steps,
            settings=FormSettings(
                success_message=cfg.format(cfg.success_message_template, tree.label),
            ),
        )


def _check_labels(node: TreeNode) -> None:
    if node.children and all(not (child.label or "").strip() for child in node.children):
        raise InvalidNodeError(node.id, "all child options are missing labels")


def compile_tree(tree: TreeNode | None, config: CompilerConfig | None = None) -> FormDefinition:
    """Compile an option tree into a step graph.

    Convenience wrapper around :class:`TreeCompiler`.
    """
    return TreeCompiler(config).compile(tree)
