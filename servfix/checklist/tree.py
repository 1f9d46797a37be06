"""
Traversal and visibility over a checklist tree.

Traversal is always driven by the template tree in authored order. Captured
responses are only ever looked up by item id, never iterated.
"""
from typing import NamedTuple, Optional

from servfix.checklist.models import ChecklistItem, InputType


class VisibleItem(NamedTuple):
    item: ChecklistItem
    parent: Optional[ChecklistItem]
    depth: int


def has_response(value) -> bool:
    """True when a captured value counts as an answer."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def comparable_value(value):
    """String form of a captured value for showWhen comparison."""
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, dict):
        return value.get('status')
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def resolve_visibility(item: ChecklistItem, responses: dict) -> bool:
    """Whether the item applies given the captured responses."""
    if item.show_when is None:
        return True
    captured = comparable_value(responses.get(item.show_when.parent_id))
    return captured == item.show_when.parent_value


def is_group_member(item: ChecklistItem, parent: Optional[ChecklistItem]) -> bool:
    return parent is not None and parent.input_type is InputType.GROUP_SELECTION


def chosen_subpoint(group: ChecklistItem, responses: dict) -> Optional[str]:
    """
    Id of the chosen member of a group_selection, or None.

    The group's own value wins (an id, or a legacy list of ids); otherwise the
    first member in order carrying a captured response counts as chosen.
    """
    member_ids = [sp.id for sp in group.subpoints]
    value = responses.get(group.id)
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate in member_ids:
            return candidate

    for sp in group.subpoints:
        member_value = responses.get(sp.id)
        if member_value is not False and has_response(member_value):
            return sp.id
    return None


def subpoints_in_effect(item: ChecklistItem, responses: dict, parent: Optional[ChecklistItem] = None) -> list:
    """Children that apply: unchecked toggles and unchosen group members close their subtree."""
    if is_group_member(item, parent):
        if chosen_subpoint(parent, responses) != item.id:
            return []
    elif item.input_type is InputType.CHECKBOX and responses.get(item.id) is not True:
        return []
    return item.children


def walk_visible(items: list, responses: dict, parent: Optional[ChecklistItem] = None, depth: int = 0):
    """Yield VisibleItem for every applicable item, depth-first in template order."""
    for item in items:
        if not resolve_visibility(item, responses):
            continue
        yield VisibleItem(item, parent, depth)
        children = subpoints_in_effect(item, responses, parent)
        if children:
            yield from walk_visible(children, responses, item, depth + 1)


def visibility_map(items: list, responses: dict) -> dict:
    """Map every item id in the tree to its current visibility."""
    visible = {entry.item.id for entry in walk_visible(items, responses)}
    result = {}
    stack = list(items)
    while stack:
        item = stack.pop()
        result[item.id] = item.id in visible
        stack.extend(item.subpoints)
    return result
