from .base import ActionRegistry, ActionSpec, ParamSpec, SwapFields, is_empty_value
from .builtin import (
    BUILTIN_ACTIONS,
    NODE_TEMPLATES,
    NodeTemplate,
    create_node_from_template,
    default_registry,
    find_template,
    register_builtin_actions,
)

__all__ = [
    "ActionRegistry",
    "ActionSpec",
    "BUILTIN_ACTIONS",
    "NODE_TEMPLATES",
    "NodeTemplate",
    "ParamSpec",
    "SwapFields",
    "create_node_from_template",
    "default_registry",
    "find_template",
    "is_empty_value",
    "register_builtin_actions",
]
