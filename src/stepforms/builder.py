"""Fluent builder for option trees.

Builds a tree through :func:`~stepforms.mutations.insert_child`, so every
call is checked the same way an edit in the builder UI is.

Example:
    ```python
    from stepforms.builder import TreeBuilder

    tree = (
        TreeBuilder("Real Estate", root_id="root-1")
        .add_option("Houses", option_id="houses")
        .add_option("Vehicles", option_id="vehicles", allow_multiple=True)
        .add_option("Car", parent="vehicles", option_id="car")
        .add_option("Bike", parent="vehicles", option_id="bike")
        .build()
    )
    form = TreeBuilder.from_tree(tree).compile()
    ```
"""

from __future__ import annotations

import logging

from typing_extensions import Self

from .compiler import compile_tree
from .config import CompilerConfig
from .ids import CounterIdSource, IdSource
from .mutations import insert_child
from .steps import FormDefinition
from .tree import DEFAULT_NEW_ITEM_LABEL, NodeKind, TreeNode, new_root

logger = logging.getLogger(__name__)


class TreeBuilder:
    """Fluent builder for :class:`~stepforms.tree.TreeNode` trees.

    Args:
        label: Root label (the form name).
        id_source: Id generator for nodes added without an explicit id.
        root_id: Explicit id for the root; drawn from ``id_source`` when None.
    """

    def __init__(
        self,
        label: str,
        id_source: IdSource | None = None,
        root_id: str | None = None,
    ) -> None:
        self._ids = id_source or CounterIdSource()
        if root_id is None:
            self._tree = new_root(label, self._ids)
        else:
            self._tree = TreeNode(id=root_id, label=label, kind=NodeKind.ROOT)
        self._last_id: str | None = None

    @classmethod
    def from_tree(cls, tree: TreeNode, id_source: IdSource | None = None) -> TreeBuilder:
        """Continue building from an existing tree."""
        builder = cls(tree.label, id_source=id_source, root_id=tree.id)
        builder._tree = tree
        return builder

    @property
    def last_id(self) -> str | None:
        """Id of the most recently added option."""
        return self._last_id

    def add_option(
        self,
        label: str = DEFAULT_NEW_ITEM_LABEL,
        parent: str | None = None,
        option_id: str | None = None,
        image_url: str | None = None,
        allow_multiple: bool = False,
        position: int | None = None,
    ) -> Self:
        """Add an option under ``parent`` (the root when None).

        Raises:
            NodeNotFoundError: If ``parent`` is not in the tree.
            DuplicateNodeError: If ``option_id`` is already used.
        """
        node = TreeNode(
            id=option_id or self._ids(),
            label=label,
            allow_multiple=allow_multiple,
            image_url=image_url,
        )
        self._tree = insert_child(self._tree, parent or self._tree.id, node, position)
        self._last_id = node.id
        return self

    def add_subtree(self, node: TreeNode, parent: str | None = None) -> Self:
        """Graft an already built subtree under ``parent``."""
        self._tree = insert_child(self._tree, parent or self._tree.id, node)
        self._last_id = node.id
        return self

    def build(self) -> TreeNode:
        logger.debug("Built tree '%s' with %d nodes", self._tree.label, len(self._tree.ids()))
        return self._tree

    def compile(self, config: CompilerConfig | None = None) -> FormDefinition:
        """Build the tree and compile it into a step graph."""
        return compile_tree(self.build(), config)
