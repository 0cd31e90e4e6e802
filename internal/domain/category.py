"""
Domain model for Category.

Categories form a three-level hierarchy: rooms (depth 0), elements
(depth 1) and sub-elements (depth 2). Products attach to sub-elements only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


ROOM_DEPTH = 0
ELEMENT_DEPTH = 1
SUB_ELEMENT_DEPTH = 2


@dataclass(frozen=True)
class Category:
    """
    Category entity as delivered by the catalog API.

    Attributes:
        id: Unique identifier for the category.
        name: Human-readable category name.
        parent_id: ID of the parent category (None for rooms).
        description: Optional free-form description.
    """

    id: int
    name: str
    parent_id: Optional[int] = None
    description: Optional[str] = None

    @property
    def is_room(self) -> bool:
        """Whether the category declares no parent."""
        return self.parent_id is None

    def to_dict(self) -> dict:
        """
        Convert to dictionary representation.

        Returns:
            Dictionary with all category data.
        """
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "description": self.description,
        }


@dataclass
class CategoryTreeNode:
    """
    Category node of the display tree.

    Attributes:
        category: The category entity.
        depth: Computed depth (0=room, 1=element, 2=sub-element).
        elements: Child elements (populated on room nodes only).
        sub_elements: Child sub-elements (populated on element nodes only).
    """

    category: Category
    depth: int = ROOM_DEPTH
    elements: list["CategoryTreeNode"] = field(default_factory=list)
    sub_elements: list["CategoryTreeNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.category.id

    @property
    def children(self) -> list["CategoryTreeNode"]:
        """Children at the next depth, whichever list holds them."""
        return self.elements if self.depth == ROOM_DEPTH else self.sub_elements

    def to_dict(self) -> dict:
        """
        Convert to dictionary representation.

        Returns:
            Nested dictionary with category data and children.
        """
        return {
            **self.category.to_dict(),
            "depth": self.depth,
            "elements": [child.to_dict() for child in self.elements],
            "sub_elements": [child.to_dict() for child in self.sub_elements],
        }


class TreeIssueKind(str, Enum):
    """Structural problems detected while building the category tree."""

    ORPHAN = "orphan"
    TOO_DEEP = "too_deep"
    CYCLE = "cycle"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class TreeIssue:
    """
    A structural problem with one category.

    Attributes:
        category_id: The offending category.
        kind: Problem kind.
        detail: Human-readable explanation.
    """

    category_id: int
    kind: TreeIssueKind
    detail: str

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "kind": self.kind.value,
            "detail": self.detail,
        }


@dataclass
class CategoryTree:
    """
    Result of building the category tree.

    Attributes:
        roots: Room nodes (including promoted orphans) in input order.
        issues: Structural problems found in the flat list.
    """

    roots: list[CategoryTreeNode] = field(default_factory=list)
    issues: list[TreeIssue] = field(default_factory=list)

    def find(self, category_id: int) -> Optional[CategoryTreeNode]:
        """
        Find a node anywhere in the tree.

        Args:
            category_id: The ID of the category.

        Returns:
            The node if it is part of the tree, None otherwise.
        """
        stack = list(self.roots)
        while stack:
            node = stack.pop()
            if node.id == category_id:
                return node
            stack.extend(node.children)
        return None

    def is_root(self, category_id: int) -> bool:
        return any(root.id == category_id for root in self.roots)

    def to_dict(self) -> dict:
        return {
            "roots": [root.to_dict() for root in self.roots],
            "issues": [issue.to_dict() for issue in self.issues],
        }
