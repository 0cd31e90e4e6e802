"""
Category drill-down state.

Tracks the room -> element -> sub-element path a user has chosen. A
shallower selection always clears the deeper slots.
"""
from enum import Enum
from typing import Iterable, Optional

from .category import Category
from .errors import InvalidSelectionError


class SelectionStage(str, Enum):
    """How deep the user has drilled."""

    EMPTY = "empty"
    ROOM_CHOSEN = "room_chosen"
    ELEMENT_CHOSEN = "element_chosen"
    SUB_ELEMENT_CHOSEN = "sub_element_chosen"


def children_of(categories: Iterable[Category], parent_id: Optional[int]) -> list[Category]:
    """
    Direct children by parent_id equality, in input order.

    Args:
        categories: The flat category list.
        parent_id: Parent to match; None yields no children.

    Returns:
        Matching categories.
    """
    if parent_id is None:
        return []
    return [category for category in categories if category.parent_id == parent_id]


class CategorySelectionState:
    """
    State machine over three ordered slots.

    Transitions:
        select_room: any stage -> ROOM_CHOSEN
        select_element: ROOM_CHOSEN or deeper -> ELEMENT_CHOSEN
        select_sub_element: ELEMENT_CHOSEN or deeper -> SUB_ELEMENT_CHOSEN
        reset: any stage -> EMPTY
    """

    def __init__(self) -> None:
        self.room: Optional[Category] = None
        self.element: Optional[Category] = None
        self.sub_element: Optional[Category] = None

    @property
    def stage(self) -> SelectionStage:
        if self.sub_element is not None:
            return SelectionStage.SUB_ELEMENT_CHOSEN
        if self.element is not None:
            return SelectionStage.ELEMENT_CHOSEN
        if self.room is not None:
            return SelectionStage.ROOM_CHOSEN
        return SelectionStage.EMPTY

    @property
    def sub_element_id(self) -> Optional[int]:
        return self.sub_element.id if self.sub_element else None

    def select_room(self, room: Category) -> None:
        self.room = room
        self.element = None
        self.sub_element = None

    def select_element(self, element: Category) -> None:
        """
        Select an element of the current room.

        Raises:
            InvalidSelectionError: If no room is selected or the element
                belongs to another room.
        """
        if self.room is None:
            raise InvalidSelectionError("Select a room before selecting an element")
        if element.parent_id != self.room.id:
            raise InvalidSelectionError(
                f"Category {element.id} is not an element of room {self.room.id}"
            )
        self.element = element
        self.sub_element = None

    def select_sub_element(self, sub_element: Category) -> None:
        """
        Select a sub-element of the current element.

        Raises:
            InvalidSelectionError: If no element is selected or the
                sub-element belongs to another element.
        """
        if self.element is None:
            raise InvalidSelectionError("Select an element before selecting a sub-element")
        if sub_element.parent_id != self.element.id:
            raise InvalidSelectionError(
                f"Category {sub_element.id} is not a sub-element of element {self.element.id}"
            )
        self.sub_element = sub_element

    def reset(self) -> None:
        self.room = None
        self.element = None
        self.sub_element = None

    def available_elements(self, categories: Iterable[Category]) -> list[Category]:
        return children_of(categories, self.room.id if self.room else None)

    def available_sub_elements(self, categories: Iterable[Category]) -> list[Category]:
        return children_of(categories, self.element.id if self.element else None)

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "room": self.room.to_dict() if self.room else None,
            "element": self.element.to_dict() if self.element else None,
            "sub_element": self.sub_element.to_dict() if self.sub_element else None,
        }
