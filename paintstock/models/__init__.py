"""Importing this package registers every table on ``Base.metadata``."""

from .inventory import InventoryItem
from .pricing import PricingRule
from .project import Project
from .reconciliation import Reconciliation, ReconciliationItem
from .tool import Tool, ToolMovement
from .transaction import InventoryTransaction

__all__ = [
    "InventoryItem",
    "InventoryTransaction",
    "PricingRule",
    "Project",
    "Reconciliation",
    "ReconciliationItem",
    "Tool",
    "ToolMovement",
]
