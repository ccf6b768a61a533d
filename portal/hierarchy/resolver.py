"""
Issue hierarchy resolution for one workflow-state bucket.

Given the flat list of issues currently in one state, produces the root
issues of the board column, each with its in-bucket direct children nested
one level deep. Deeper in-bucket descendants are not rendered; they show up
only in the numbers (``descendant_count`` and ``breakdown``), which are
computed from the full children tree Linear reports, regardless of state.

Classification of an issue in the bucket:

    no parent                                  -> root
    parent not in this bucket (or unknown)     -> root
    parent in bucket, grandparent not in it    -> visible child of parent
    parent and grandparent both in bucket      -> hidden
"""

from dataclasses import dataclass, field
from typing import Any

from portal.errors import MalformedDataError
from portal.linear.models import Issue
from portal.logging import get_logger

logger = get_logger("hierarchy.resolver")

DEFAULT_MAX_DEPTH = 50


@dataclass
class HierarchyBreakdown:
    """Descendant counts by depth, plus a state histogram of levels 1 and 2."""

    level1: int = 0
    level2: int = 0
    level3_plus: int = 0
    by_state: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.level1 + self.level2 + self.level3_plus

    def to_dict(self) -> dict[str, Any]:
        return {
            "level1": self.level1,
            "level2": self.level2,
            "level3_plus": self.level3_plus,
            "by_state": dict(self.by_state),
            "total": self.total,
        }


@dataclass
class HierarchyNode:
    issue: Issue
    visible_children: list["HierarchyNode"] = field(default_factory=list)
    descendant_count: int = 0
    breakdown: HierarchyBreakdown = field(default_factory=HierarchyBreakdown)
    # True when the issue has a parent that sits in another state.
    parent_elsewhere: bool = False

    @property
    def id(self) -> str:
        return self.issue.id

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.issue.to_dict(),
            "visible_children": [child.to_dict() for child in self.visible_children],
            "descendant_count": self.descendant_count,
            "breakdown": self.breakdown.to_dict(),
            "parent_elsewhere": self.parent_elsewhere,
        }


class HierarchyResolver:
    """
    Builds the visible tree for one state bucket.

    Stateless apart from its depth limit; one instance can serve concurrent
    resolutions.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def resolve(self, issues: list[Issue]) -> list[HierarchyNode]:
        """
        Resolve one bucket into root nodes.

        Raises:
            MalformedDataError: On a self-parented issue, a parent cycle within
                the bucket, or a children tree that loops or exceeds max_depth
        """
        if not issues:
            return []

        lookup: dict[str, Issue] = {}
        ordered: list[Issue] = []
        for issue in issues:
            if issue.id in lookup:
                logger.warning("hierarchy_duplicate_issue", issue_id=issue.id)
                continue
            if issue.parent_id == issue.id:
                raise MalformedDataError("Issue hierarchy contains a self-parented issue")
            lookup[issue.id] = issue
            ordered.append(issue)

        self._check_parent_cycles(ordered, lookup)

        roots: list[HierarchyNode] = []
        children_by_parent: dict[str, list[Issue]] = {}
        hidden = 0

        for issue in ordered:
            parent_id = issue.parent_id
            if parent_id is None or parent_id not in lookup:
                roots.append(self._node(issue, parent_elsewhere=parent_id is not None))
                continue

            grandparent_id = lookup[parent_id].parent_id
            if grandparent_id is not None and grandparent_id in lookup:
                hidden += 1
                continue

            children_by_parent.setdefault(parent_id, []).append(issue)

        for root in roots:
            root.visible_children = [self._node(child) for child in children_by_parent.get(root.id, [])]

        logger.debug(
            "hierarchy_resolved",
            issues=len(ordered),
            roots=len(roots),
            visible_children=sum(len(root.visible_children) for root in roots),
            hidden=hidden,
        )
        return roots

    # =========================================================================
    # Descendant Counting
    # =========================================================================

    def _node(self, issue: Issue, parent_elsewhere: bool = False) -> HierarchyNode:
        breakdown = self.breakdown(issue)
        return HierarchyNode(
            issue=issue,
            descendant_count=breakdown.total,
            breakdown=breakdown,
            parent_elsewhere=parent_elsewhere,
        )

    def count_descendants(self, issue: Issue) -> int:
        """Count every descendant reported under ``issue``, at any depth."""
        return self._count(issue, depth=0, seen={issue.id})

    def _count(self, issue: Issue, depth: int, seen: set[str]) -> int:
        if depth > self.max_depth:
            logger.warning("hierarchy_depth_exceeded", issue_id=issue.id, max_depth=self.max_depth)
            raise MalformedDataError("Issue hierarchy is too deep")

        total = 0
        for child in issue.direct_children:
            if child.id in seen:
                logger.warning("hierarchy_cycle_detected", issue_id=issue.id, child_id=child.id)
                raise MalformedDataError("Issue hierarchy contains a cycle")
            seen.add(child.id)
            total += 1 + self._count(child, depth + 1, seen)
        return total

    def breakdown(self, issue: Issue) -> HierarchyBreakdown:
        """
        Level counts for ``issue``'s reported subtree.

        level1 is direct children, level2 grandchildren, level3_plus every
        descendant below the grandchildren. ``by_state`` counts levels 1 and 2.
        """
        result = HierarchyBreakdown()
        seen = {issue.id}

        for child in issue.direct_children:
            if child.id in seen:
                raise MalformedDataError("Issue hierarchy contains a cycle")
            seen.add(child.id)
            result.level1 += 1
            _bump(result.by_state, child.state_name)

            for grandchild in child.direct_children:
                if grandchild.id in seen:
                    raise MalformedDataError("Issue hierarchy contains a cycle")
                seen.add(grandchild.id)
                result.level2 += 1
                _bump(result.by_state, grandchild.state_name)
                result.level3_plus += self._count(grandchild, depth=2, seen=seen)

        return result

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _check_parent_cycles(issues: list[Issue], lookup: dict[str, Issue]) -> None:
        """Reject parent chains that loop inside the bucket."""
        cleared: set[str] = set()
        for issue in issues:
            path: set[str] = set()
            current: Issue | None = issue
            while current is not None and current.id not in cleared:
                if current.id in path:
                    logger.warning("hierarchy_parent_cycle", issue_id=issue.id)
                    raise MalformedDataError("Issue hierarchy contains a cycle")
                path.add(current.id)
                parent_id = current.parent_id
                current = lookup.get(parent_id) if parent_id else None
            cleared.update(path)


def _bump(histogram: dict[str, int], key: str) -> None:
    histogram[key] = histogram.get(key, 0) + 1
