"""
Completion evaluator - decides whether a component is done.

is_complete() and find_incomplete() share one generator of failures, so the
boolean verdict and the reasons shown in the capture UI can never disagree.
"""
from servfix.checklist.models import InputType, STATUS_INPUT_TYPES, STATUSES_NEEDING_COMMENT
from servfix.checklist.tree import chosen_subpoint, has_response, is_group_member, walk_visible


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def item_failure(item, responses: dict, parent=None):
    """Reason the item's required rule fails, or None when it is satisfied."""
    if is_group_member(item, parent):
        return None  # judged through the group
    value = responses.get(item.id)
    input_type = item.input_type

    if input_type in STATUS_INPUT_TYPES:
        if not isinstance(value, dict) or not value.get('status'):
            return 'mangler status'
        if value['status'] in STATUSES_NEEDING_COMMENT and _is_blank(value.get('comment')):
            return 'mangler kommentar for {}'.format(value['status'])
        return None
    if input_type is InputType.CHECKBOX:
        return None if isinstance(value, bool) else 'ikke besvart'
    if input_type is InputType.GROUP_SELECTION:
        return None if chosen_subpoint(item, responses) else 'ingen valgt'
    if input_type in (InputType.MULTI_CHECKBOX, InputType.IMAGE_ONLY):
        return None if value is True or (isinstance(value, list) and value) else 'ikke besvart'
    if input_type is InputType.TIMER:
        return None if not _is_blank(value) and value != '00:00:00' else 'ikke besvart'
    return None if not _is_blank(value) else 'ikke besvart'


def _iter_failures(template, component):
    for field in template.system_fields:
        if field.required and _is_blank(component.details.get(field.name)):
            yield None, '{}: mangler verdi'.format(field.label)

    responses = component.checklist
    for entry in walk_visible(template.checklist_items, responses):
        if not entry.item.required:
            continue
        reason = item_failure(entry.item, responses, entry.parent)
        if reason:
            yield entry.item.id, '{}: {}'.format(entry.item.label, reason)


def is_complete(template, component) -> bool:
    """True when every required field and visible required item is answered."""
    for _ in _iter_failures(template, component):
        return False
    return True


def find_incomplete(template, component) -> list:
    """Every failure as {'itemId', 'reason'}; itemId is None for system fields."""
    return [
        {'itemId': item_id, 'reason': reason}
        for item_id, reason in _iter_failures(template, component)
    ]


def item_states(template, component) -> dict:
    """
    Per-item state for the capture UI.

    Returns: {item_id: {'visible': bool, 'answered': bool, 'satisfied': bool}}
    Hidden items are reported too, so the UI can keep their captured data.
    """
    responses = component.checklist
    visible = {entry.item.id for entry in walk_visible(template.checklist_items, responses)}

    states = {}
    parents = {}
    for item in template.iter_items():
        for sp in item.subpoints:
            parents[sp.id] = item
    for item in template.iter_items():
        is_visible = item.id in visible
        reason = item_failure(item, responses, parents.get(item.id)) if is_visible else None
        states[item.id] = {
            'visible': is_visible,
            'answered': has_response(responses.get(item.id)),
            'satisfied': not (is_visible and item.required and reason),
        }
    return states
