"""Shared fixtures for stepforms tests."""

import pytest

from stepforms.compiler import compile_tree
from stepforms.ids import CounterIdSource
from stepforms.tree import NodeKind, TreeNode


def option(node_id, label, *children, allow_multiple=False, image_url=None):
    """Build an option node with readable ids for assertions."""
    return TreeNode(
        id=node_id,
        label=label,
        allow_multiple=allow_multiple,
        image_url=image_url,
        children=children,
    )


@pytest.fixture
def ids():
    """Deterministic id source."""
    return CounterIdSource()


@pytest.fixture
def simple_tree():
    """Real Estate -> (Houses, Apartments), both leaves."""
    return TreeNode(
        id="root-1",
        label="Real Estate",
        kind=NodeKind.ROOT,
        children=(
            option("houses", "Houses", image_url="https://img/houses.png"),
            option("apartments", "Apartments"),
        ),
    )


@pytest.fixture
def vehicles_tree():
    """Vehicles (multi-select) -> (Car, Bike) under a single root."""
    return TreeNode(
        id="root-1",
        label="Transport",
        kind=NodeKind.ROOT,
        children=(
            option(
                "vehicles", "Vehicles",
                option("car", "Car"),
                option("bike", "Bike"),
                allow_multiple=True,
            ),
        ),
    )


@pytest.fixture
def deep_tree():
    """Real Estate -> Houses, Vehicles -> (Car -> (Sedan, Sports Car), Bike)."""
    return TreeNode(
        id="root-1",
        label="Real Estate",
        kind=NodeKind.ROOT,
        children=(
            option("houses", "Houses"),
            option(
                "vehicles", "Vehicles",
                option("car", "Car", option("sedan", "Sedan"), option("sports", "Sports Car")),
                option("bike", "Bike"),
            ),
        ),
    )


@pytest.fixture
def vehicles_form(vehicles_tree):
    return compile_tree(vehicles_tree)


@pytest.fixture
def deep_form(deep_tree):
    return compile_tree(deep_tree)
