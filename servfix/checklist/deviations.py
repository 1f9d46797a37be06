"""
Deviation (avvik) extractor.

Numbering is a pure function of the stored components, their templates and
their responses: one running counter over the whole report, never stored.
Every item in the template tree is considered, hidden or not: a recorded avvik
stays on the report even after the toggle that revealed it is switched off.
"""
from servfix.checklist.models import Deviation, STATUS_INPUT_TYPES


def component_title(template, component, position=None):
    """Display name of a component: its system field values joined with ' - '."""
    parts = []
    for field in template.system_fields:
        value = (component.details.get(field.name) or '').strip()
        if value:
            parts.append(value)
    if parts:
        return ' - '.join(parts)
    if component.equipment_name:
        return component.equipment_name
    if position is not None:
        return 'Komponent {}'.format(position)
    return component.equipment_type or 'Komponent'


def deviation_response(item, value):
    """The status dict when the response is a reportable avvik, else None."""
    if item.input_type not in STATUS_INPUT_TYPES or not isinstance(value, dict):
        return None
    if value.get('status') != 'avvik':
        return None
    if not (value.get('comment') or '').strip():
        return None
    return value


def component_deviations(component, template, position=None, first_number=1) -> list:
    """Deviations of one component, numbered from first_number."""
    deviations = []
    counter = first_number
    title = component_title(template, component, position)
    responses = component.checklist
    for item in template.iter_items():
        value = deviation_response(item, responses.get(item.id))
        if value is None:
            continue
        deviations.append(Deviation(
            id='{:03d}'.format(counter),
            number=counter,
            component_id=component.id,
            component_name=title,
            item_id=item.id,
            checkpoint_label=item.label,
            description=value['comment'].strip(),
            images=list(value.get('images') or []),
        ))
        counter += 1
    return deviations


def extract_deviations(entries) -> list:
    """
    Number every avvik across a report.

    Args:
        entries: ordered (component, template) pairs

    Returns: list of Deviation, ids '001', '002', ... in component then item order
    """
    deviations = []
    for position, (component, template) in enumerate(entries, start=1):
        deviations.extend(
            component_deviations(component, template, position, len(deviations) + 1)
        )
    return deviations
