"""Option-tree form builder and step-graph compiler.

This package provides:

- **Tree model and edits**: Immutable option trees with pure mutation
  functions and a breadcrumb resolver
- **Compilers**: Option tree to step graph and back
- **Validation**: JSON-schema and structural checks for step graphs
- **Navigation**: A runtime state machine that walks a compiled form
- **Payload**: The storage envelope for saved forms

Example:
    ```python
    from stepforms import FormNavigator, TreeBuilder, decompile_steps

    form = (
        TreeBuilder("Real Estate")
        .add_option("Houses")
        .add_option("Vehicles", option_id="vehicles")
        .add_option("Car", parent="vehicles")
        .compile()
    )
    nav = FormNavigator(form)
    tree = decompile_steps(form)
    ```
"""

from stepforms.builder import TreeBuilder
from stepforms.compiler import TreeCompiler, compile_tree
from stepforms.config import DEFAULT_FINAL_FIELDS, CompilerConfig
from stepforms.decompiler import decompile_steps
from stepforms.exceptions import (
    ConfigurationError,
    DuplicateNodeError,
    InvalidNodeError,
    InvalidStepGraphError,
    MalformedStepGraphError,
    NodeNotFoundError,
    NotFoundError,
    OperationError,
    SerializationError,
    StepformsError,
    UnknownTransitionError,
    ValidationError,
)
from stepforms.ids import CounterIdSource, IdSource, UuidIdSource, slugify
from stepforms.mutations import (
    child_items,
    find_by_id,
    insert_child,
    move_node,
    remove_by_id,
    toggle_expanded,
    update_by_id,
)
from stepforms.navigation import (
    FormNavigator,
    NavigationOutcome,
    NavigationState,
    TransitionRecord,
    create_transition_record,
)
from stepforms.paths import Breadcrumb, breadcrumbs, depth_of, find_parent, find_path
from stepforms.payload import (
    FormRecord,
    TemplateCategory,
    decode_form,
    encode_form,
    load_tree,
)
from stepforms.steps import (
    ENTRY_STEP_ID,
    FINAL_STEP_ID,
    FieldOption,
    FieldType,
    FormDefinition,
    FormField,
    FormSettings,
    FormStep,
    StepCondition,
)
from stepforms.tree import NodeKind, TreeNode, new_option, new_root
from stepforms.validation import (
    STEP_GRAPH_SCHEMA,
    ValidationResult,
    ensure_valid,
    find_reachable,
    validate_form,
    validate_payload,
)

__version__ = "0.1.0"

__all__ = [
    # Tree
    "NodeKind",
    "TreeNode",
    "new_option",
    "new_root",
    "TreeBuilder",
    "IdSource",
    "CounterIdSource",
    "UuidIdSource",
    "slugify",
    # Edits and paths
    "child_items",
    "find_by_id",
    "insert_child",
    "move_node",
    "remove_by_id",
    "toggle_expanded",
    "update_by_id",
    "Breadcrumb",
    "breadcrumbs",
    "depth_of",
    "find_parent",
    "find_path",
    # Step graph
    "ENTRY_STEP_ID",
    "FINAL_STEP_ID",
    "FieldOption",
    "FieldType",
    "FormDefinition",
    "FormField",
    "FormSettings",
    "FormStep",
    "StepCondition",
    # Compilers
    "CompilerConfig",
    "DEFAULT_FINAL_FIELDS",
    "TreeCompiler",
    "compile_tree",
    "decompile_steps",
    # Validation
    "STEP_GRAPH_SCHEMA",
    "ValidationResult",
    "ensure_valid",
    "find_reachable",
    "validate_form",
    "validate_payload",
    # Navigation
    "FormNavigator",
    "NavigationOutcome",
    "NavigationState",
    "TransitionRecord",
    "create_transition_record",
    # Payload
    "FormRecord",
    "TemplateCategory",
    "decode_form",
    "encode_form",
    "load_tree",
    # Exceptions
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
    "__version__",
]
