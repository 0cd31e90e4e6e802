"""
Category tree construction.

Turns the flat, parent-referenced category list into the room -> element ->
sub-element display tree. Depth is computed explicitly from parent links
rather than inferred from the parent's position.
"""
from collections import Counter
from typing import Iterable

from internal.domain.category import (
    ROOM_DEPTH,
    SUB_ELEMENT_DEPTH,
    Category,
    CategoryTree,
    CategoryTreeNode,
    TreeIssue,
    TreeIssueKind,
)
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


# Depth marker for categories on, or below, a parent cycle.
_IN_CYCLE = -1


def latest_by_id(categories: Iterable[Category]) -> list[Category]:
    """
    Drop repeated category ids, the last entry wins.

    The surviving entry keeps its own position in the input order.
    """
    categories = list(categories)
    last_index = {category.id: i for i, category in enumerate(categories)}
    return [category for i, category in enumerate(categories) if last_index[category.id] == i]


def build_category_tree(flat: Iterable[Category]) -> CategoryTree:
    """
    Build the three-level category tree.

    Sibling order follows input order. Categories whose parent is missing
    are promoted to rooms; categories deeper than a sub-element, or caught
    in a parent cycle, are left out. Every such case is reported in
    `CategoryTree.issues`. Never raises.

    Args:
        flat: Categories as delivered by the catalog API.

    Returns:
        The tree roots and the detected structural issues.
    """
    categories = list(flat)
    tree = CategoryTree()
    if not categories:
        return tree

    seen: set[int] = set()
    for category in categories:
        if category.id in seen:
            tree.issues.append(
                TreeIssue(
                    category_id=category.id,
                    kind=TreeIssueKind.DUPLICATE,
                    detail=f"Category id {category.id} appears more than once, last entry wins",
                )
            )
        seen.add(category.id)

    categories = latest_by_id(categories)
    by_id = {category.id: category for category in categories}
    depths, cycle_members = _resolve_depths(by_id)

    nodes: dict[int, CategoryTreeNode] = {}
    for category in categories:
        depth = depths[category.id]

        if depth == _IN_CYCLE:
            detail = (
                f"Category {category.id} is part of a parent cycle"
                if category.id in cycle_members
                else f"Category {category.id} descends from a parent cycle"
            )
            tree.issues.append(TreeIssue(category.id, TreeIssueKind.CYCLE, detail))
            continue

        if depth > SUB_ELEMENT_DEPTH:
            tree.issues.append(
                TreeIssue(
                    category.id,
                    TreeIssueKind.TOO_DEEP,
                    f"Category {category.id} is nested at depth {depth}, max is {SUB_ELEMENT_DEPTH}",
                )
            )
            continue

        node = CategoryTreeNode(category=category, depth=depth)
        nodes[category.id] = node

        if depth == ROOM_DEPTH:
            if category.parent_id is not None:
                tree.issues.append(
                    TreeIssue(
                        category.id,
                        TreeIssueKind.ORPHAN,
                        f"Parent {category.parent_id} of category {category.id} does not exist, "
                        "promoted to room",
                    )
                )
            tree.roots.append(node)

    # Second pass so that a child listed before its parent still lands in
    # the parent's list, in input order.
    for category in categories:
        node = nodes.get(category.id)
        if node is None or node.depth == ROOM_DEPTH:
            continue
        parent = nodes[category.parent_id]
        if node.depth == ROOM_DEPTH + 1:
            parent.elements.append(node)
        else:
            parent.sub_elements.append(node)

    if tree.issues:
        kinds = Counter(issue.kind.value for issue in tree.issues)
        logger.warning(
            "Category tree has structural issues",
            issues=len(tree.issues),
            kinds=dict(kinds),
            category_ids=[issue.category_id for issue in tree.issues],
        )

    logger.debug("Category tree built", categories=len(categories), roots=len(tree.roots))
    return tree


def _resolve_depths(by_id: dict[int, Category]) -> tuple[dict[int, int], set[int]]:
    """
    Compute the depth of every category by walking parent links.

    Returns:
        Depth per category id (_IN_CYCLE for cycle members and their
        descendants) and the set of ids forming cycles.
    """
    depths: dict[int, int] = {}
    cycle_members: set[int] = set()

    for start in by_id:
        if start in depths:
            continue

        path: list[int] = []
        position: dict[int, int] = {}
        current = start
        while True:
            if current in depths:
                base = depths[current]
                break
            if current in position:
                loop = path[position[current]:]
                cycle_members.update(loop)
                for category_id in loop:
                    depths[category_id] = _IN_CYCLE
                path = path[:position[current]]
                base = _IN_CYCLE
                break

            parent_id = by_id[current].parent_id
            if parent_id is None or parent_id not in by_id:
                depths[current] = ROOM_DEPTH
                base = ROOM_DEPTH
                break

            position[current] = len(path)
            path.append(current)
            current = parent_id

        # path[-1] is the child of the node whose depth is `base`.
        for category_id in reversed(path):
            base = _IN_CYCLE if base == _IN_CYCLE else base + 1
            depths[category_id] = base

    return depths, cycle_members
