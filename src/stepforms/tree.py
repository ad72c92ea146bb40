"""Editor-side option tree.

The builder edits a nested tree of options: a single root whose label names
the form, with options and sub-options below it. Nodes are immutable; every
edit (see :mod:`stepforms.mutations`) returns a new tree, which is what makes
undo/redo and discard-on-error safe.

Ownership is implied by nesting. There are no parent back-pointers; any
parent relationship (e.g. breadcrumbs) is derived by path search in
:mod:`stepforms.paths`.

Typical usage example:

    ```python
    from stepforms.ids import CounterIdSource
    from stepforms.tree import new_option, new_root

    ids = CounterIdSource()
    root = new_root("Real Estate", ids)
    houses = new_option(ids, "Houses")
    root = root.with_children([houses])

    print(root.as_string())  # (Real Estate Houses)
    ```
"""

from __future__ import annotations

import dataclasses
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque

from .exceptions import SerializationError
from .ids import IdSource

DEFAULT_NEW_ITEM_LABEL = "New Item"


class NodeKind(str, Enum):
    """Role of a node in the option tree."""

    ROOT = "root"
    OPTION = "option"


@dataclass(frozen=True)
class TreeNode:
    """A node in the editor's option tree.

    Attributes:
        id: Identifier, unique within the tree and stable across edits.
        label: Display text. The root's label becomes the form name.
        kind: ``root`` (exactly once, at depth 0) or ``option``.
        allow_multiple: Whether this node's children form a multi-select
            (checkbox) group rather than a single-select (radio) group.
        image_url: Optional image associated with the option.
        is_expanded: UI-only flag; never affects compiled output.
        children: Ordered child nodes, owned exclusively by this node.
    """

    id: str
    label: str
    kind: NodeKind = NodeKind.OPTION
    allow_multiple: bool = False
    image_url: str | None = None
    is_expanded: bool = True
    children: tuple[TreeNode, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of children (lists from callers, generators)
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))
        if not isinstance(self.kind, NodeKind):
            object.__setattr__(self, "kind", NodeKind(self.kind))

    @property
    def is_leaf(self) -> bool:
        """True if this node has no children (compiles to a terminal branch)."""
        return not self.children

    def has_children(self) -> bool:
        """Check if this node has any children."""
        return bool(self.children)

    @property
    def num_children(self) -> int:
        """Number of direct children."""
        return len(self.children)

    def with_children(self, children: Iterable[TreeNode]) -> TreeNode:
        """Return a copy of this node with ``children`` replacing its own."""
        return dataclasses.replace(self, children=tuple(children))

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield this node and all descendants in depth-first pre-order."""
        stack: Deque[TreeNode] = deque([self])
        while stack:
            node = stack.popleft()
            yield node
            stack.extendleft(reversed(node.children))

    def ids(self) -> list[str]:
        """All node ids in this subtree, in pre-order."""
        return [node.id for node in self.iter_nodes()]

    def as_string(self, delim: str = " ", multiline: bool = False, _depth: int = 0) -> str:
        """Get a parenthesized outline of this subtree by label.

        Args:
            delim: Indentation used between levels.
            multiline: If True, puts each child on its own indented line.

        Returns:
            e.g. ``(Vehicles Car Bike)`` or the multiline equivalent.
        """
        if not self.children:
            return self.label
        btwn = "\n" if multiline else ""
        result = "(" + self.label
        for child in self.children:
            d = ((_depth + 1) if multiline else 1) * delim
            result += btwn + d + child.as_string(delim=delim, multiline=multiline, _depth=_depth + 1)
        return result + ")"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the editor's JSON shape."""
        d: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "allowMultiple": self.allow_multiple,
            "isExpanded": self.is_expanded,
        }
        if self.image_url is not None:
            d["imageUrl"] = self.image_url
        d["children"] = [child.to_dict() for child in self.children]
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeNode:
        """Build a node (and its subtree) from the editor's JSON shape.

        The legacy ``type`` key is accepted in place of ``kind``.

        Raises:
            SerializationError: If ``id`` is missing or ``kind`` is unknown.
        """
        if "id" not in data:
            raise SerializationError(
                "Tree node is missing 'id'", context={"keys": sorted(data)}
            )
        raw_kind = data.get("kind", data.get("type", NodeKind.OPTION.value))
        try:
            kind = NodeKind(raw_kind)
        except ValueError as e:
            raise SerializationError(
                f"Unknown node kind '{raw_kind}'",
                context={"node_id": data["id"], "kind": raw_kind},
            ) from e
        return cls(
            id=str(data["id"]),
            label=data.get("label", ""),
            kind=kind,
            allow_multiple=bool(data.get("allowMultiple", False)),
            image_url=data.get("imageUrl") or None,
            is_expanded=bool(data.get("isExpanded", True)),
            children=tuple(cls.from_dict(child) for child in data.get("children") or ()),
        )


def new_root(label: str, id_source: IdSource) -> TreeNode:
    """Create an empty root node for a new form."""
    return TreeNode(id=id_source(), label=label, kind=NodeKind.ROOT)


def new_option(
    id_source: IdSource,
    label: str = DEFAULT_NEW_ITEM_LABEL,
    image_url: str | None = None,
    allow_multiple: bool = False,
) -> TreeNode:
    """Create a leaf option node with a fresh id from ``id_source``."""
    return TreeNode(
        id=id_source(),
        label=label,
        kind=NodeKind.OPTION,
        allow_multiple=allow_multiple,
        image_url=image_url,
    )
