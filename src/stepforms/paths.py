"""Root-to-node paths and breadcrumbs.

The option tree keeps no parent pointers, so ancestry is always derived by
searching from the root.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .tree import TreeNode


@dataclass(frozen=True)
class Breadcrumb:
    """One entry of the navigation trail shown above the builder grid."""

    id: str
    label: str
    is_active: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "isActive": self.is_active}


def find_path(tree: TreeNode | None, target_id: str) -> list[TreeNode]:
    """Get the path from the root to the node ``target_id``.

    Args:
        tree: Root of the tree, or None for an empty tree.
        target_id: Id of the node to locate.

    Returns:
        Ordered list of nodes from the root to the target (inclusive), or an
        empty list if the target is not in the tree.

    Example:
        ```python
        # root -> A -> B
        [n.label for n in find_path(tree, b.id)]  # ['root', 'A', 'B']
        ```
    """
    if tree is None:
        return []
    # Iterative DFS carrying the path to each node
    stack: list[tuple[TreeNode, list[TreeNode]]] = [(tree, [tree])]
    while stack:
        node, path = stack.pop()
        if node.id == target_id:
            return path
        for child in reversed(node.children):
            stack.append((child, path + [child]))
    return []


def breadcrumbs(tree: TreeNode | None, target_id: str | None) -> list[Breadcrumb]:
    """Project the path to ``target_id`` into breadcrumbs.

    Only the last breadcrumb (the target itself) is active.
    """
    if target_id is None:
        return []
    path = find_path(tree, target_id)
    return [
        Breadcrumb(id=node.id, label=node.label, is_active=idx == len(path) - 1)
        for idx, node in enumerate(path)
    ]


def find_parent(tree: TreeNode | None, node_id: str) -> TreeNode | None:
    """Return the parent of ``node_id``, or None for the root or a missing id."""
    path = find_path(tree, node_id)
    return path[-2] if len(path) > 1 else None


def depth_of(tree: TreeNode | None, node_id: str) -> int | None:
    """Number of hops from the root to ``node_id`` (root is 0), None if absent."""
    path = find_path(tree, node_id)
    return len(path) - 1 if path else None
