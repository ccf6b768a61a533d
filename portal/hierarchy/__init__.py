"""Issue hierarchy resolution."""

from portal.hierarchy.resolver import HierarchyBreakdown, HierarchyNode, HierarchyResolver

__all__ = ["HierarchyResolver", "HierarchyNode", "HierarchyBreakdown"]
