"""Pure edit operations over the option tree.

Every function takes a tree (a root :class:`~stepforms.tree.TreeNode`, or
``None`` for an empty tree) and returns a new tree; the input is never
modified. Only the nodes on the path to an edited node are rebuilt, so
untouched subtrees are shared between the old and new values.

Updating or removing an id that is not in the tree is a no-op returning the
input unchanged, which keeps repeated edits idempotent. Inserting under a
missing parent is an error.

Example:
    ```python
    tree = insert_child(tree, "vehicles", new_option(ids, "Boat"))
    tree = update_by_id(tree, "vehicles", allow_multiple=True)
    tree = toggle_expanded(tree, "vehicles")
    tree = remove_by_id(tree, "boat-id")
    ```
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .exceptions import DuplicateNodeError, NodeNotFoundError, ValidationError
from .tree import TreeNode

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = frozenset(f.name for f in dataclasses.fields(TreeNode))


def find_by_id(tree: TreeNode | None, node_id: str) -> TreeNode | None:
    """Find the first node with ``node_id`` by depth-first search.

    Args:
        tree: Root of the tree, or None for an empty tree.
        node_id: Id to look for.

    Returns:
        The matching node, or None if not found.
    """
    if tree is None:
        return None
    for node in tree.iter_nodes():
        if node.id == node_id:
            return node
    return None


def _rebuild(
    node: TreeNode,
    node_id: str,
    transform: Callable[[TreeNode], TreeNode | None],
) -> tuple[TreeNode | None, bool]:
    """Apply ``transform`` to the first node matching ``node_id``.

    Returns the (possibly new) node and whether a match was found. Only the
    ancestors of the match are copied; other subtrees are reused as-is.
    A transform returning None removes the matched node.
    """
    if node.id == node_id:
        return transform(node), True
    for idx, child in enumerate(node.children):
        new_child, found = _rebuild(child, node_id, transform)
        if found:
            if new_child is None:
                children = node.children[:idx] + node.children[idx + 1:]
            else:
                children = node.children[:idx] + (new_child,) + node.children[idx + 1:]
            return dataclasses.replace(node, children=children), True
    return node, False


def update_by_id(
    tree: TreeNode | None,
    node_id: str,
    patch: Mapping[str, Any] | None = None,
    **changes: Any,
) -> TreeNode | None:
    """Return a tree where the node with ``node_id`` is merged with a patch.

    Args:
        tree: Root of the tree, or None for an empty tree.
        node_id: Id of the node to update.
        patch: Mapping of field name to new value.
        **changes: Additional field changes; these win over ``patch``.

    Returns:
        The updated tree, or ``tree`` itself if ``node_id`` is absent.

    Raises:
        ValidationError: If the patch names a field TreeNode does not have.
    """
    merged = {**(patch or {}), **changes}
    unknown = sorted(set(merged) - _PATCHABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown tree node field(s): {', '.join(unknown)}",
            context={"node_id": node_id, "fields": unknown},
        )
    if tree is None or not merged:
        return tree

    new_tree, found = _rebuild(tree, node_id, lambda n: dataclasses.replace(n, **merged))
    if not found:
        logger.debug("update_by_id: '%s' not in tree, nothing to update", node_id)
        return tree
    return new_tree


def remove_by_id(tree: TreeNode | None, node_id: str) -> TreeNode | None:
    """Return a tree with the node ``node_id`` and its subtree removed.

    Removing the root yields an empty tree (None). Removing an absent id
    returns ``tree`` unchanged.
    """
    if tree is None:
        return None
    new_tree, found = _rebuild(tree, node_id, lambda n: None)
    if not found:
        logger.debug("remove_by_id: '%s' not in tree, nothing to remove", node_id)
        return tree
    return new_tree


def insert_child(
    tree: TreeNode | None,
    parent_id: str,
    new_node: TreeNode,
    position: int | None = None,
) -> TreeNode:
    """Return a tree with ``new_node`` added to ``parent_id``'s children.

    Args:
        tree: Root of the tree, or None for an empty tree.
        parent_id: Id of the node receiving the child.
        new_node: Node (with any subtree) to insert.
        position: Optional 0-based index among the parent's children;
            appends when None or out of range.

    Returns:
        The new tree.

    Raises:
        NodeNotFoundError: If ``parent_id`` is not in the tree.
        DuplicateNodeError: If any id in ``new_node``'s subtree already
            exists in the tree.
    """
    if tree is None:
        raise NodeNotFoundError(parent_id, "insert_child")

    existing = set(tree.ids())
    duplicates = [nid for nid in new_node.ids() if nid in existing]
    if duplicates:
        raise DuplicateNodeError(duplicates, parent_id)

    def _append(parent: TreeNode) -> TreeNode:
        children = list(parent.children)
        if position is not None and 0 <= position < len(children):
            children.insert(position, new_node)
        else:
            children.append(new_node)
        return parent.with_children(children)

    new_tree, found = _rebuild(tree, parent_id, _append)
    if not found or new_tree is None:
        raise NodeNotFoundError(parent_id, "insert_child")
    return new_tree


def toggle_expanded(tree: TreeNode | None, node_id: str) -> TreeNode | None:
    """Flip ``is_expanded`` on the node ``node_id`` only."""
    node = find_by_id(tree, node_id)
    if node is None:
        return tree
    return update_by_id(tree, node_id, is_expanded=not node.is_expanded)


def move_node(
    tree: TreeNode | None,
    node_id: str,
    new_parent_id: str,
    position: int | None = None,
) -> TreeNode:
    """Detach the subtree at ``node_id`` and re-attach it under a new parent.

    Raises:
        NodeNotFoundError: If either id is not in the tree.
        ValidationError: If the move targets the node itself, one of its
            descendants, or the root.
    """
    node = find_by_id(tree, node_id)
    if tree is None or node is None:
        raise NodeNotFoundError(node_id, "move_node")
    if find_by_id(tree, new_parent_id) is None:
        raise NodeNotFoundError(new_parent_id, "move_node")
    if node.id == tree.id:
        raise ValidationError("Cannot move the root node", context={"node_id": node_id})
    if find_by_id(node, new_parent_id) is not None:
        raise ValidationError(
            f"Cannot move '{node_id}' into its own subtree",
            context={"node_id": node_id, "new_parent_id": new_parent_id},
        )
    detached = remove_by_id(tree, node_id)
    return insert_child(detached, new_parent_id, node, position)


def child_items(tree: TreeNode | None, node_id: str) -> list[dict[str, Any]]:
    """Project the children of ``node_id`` into grid items for display.

    Returns:
        List of ``{"id", "label", "imageUrl", "allowMultiple"}`` dicts, or an
        empty list if the node is missing.
    """
    node = find_by_id(tree, node_id)
    if node is None:
        return []
    return [
        {
            "id": child.id,
            "label": child.label,
            "imageUrl": child.image_url,
            "allowMultiple": child.allow_multiple,
        }
        for child in node.children
    ]
