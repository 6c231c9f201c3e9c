from .engine import MutationEngine, Placement
from .factory import (
    create_column,
    create_container,
    create_section,
    create_widget,
    generate_node_id,
)

__all__ = [
    "MutationEngine",
    "Placement",
    "create_column",
    "create_container",
    "create_section",
    "create_widget",
    "generate_node_id",
]
