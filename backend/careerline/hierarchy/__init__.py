"""Hierarchy engine: node store, closure index, validation, and tree queries."""

from careerline.hierarchy.closure import ClosureMaintainer
from careerline.hierarchy.permissions import PermissionFilter
from careerline.hierarchy.queries import TreeQueryService
from careerline.hierarchy.rules import HierarchyValidator
from careerline.hierarchy.service import NodeService

__all__ = [
    "ClosureMaintainer",
    "HierarchyValidator",
    "NodeService",
    "PermissionFilter",
    "TreeQueryService",
]
