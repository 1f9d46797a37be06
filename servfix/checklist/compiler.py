"""
Report compiler - assembles the renderer input for a service report.

The output is a plain dict (snake_case keys) consumed by the Jinja report
template and returned as JSON by the document endpoint.
"""
from decimal import Decimal, ROUND_HALF_UP

from servfix.checklist.collector import format_number
from servfix.checklist.completion import is_complete
from servfix.checklist.deviations import component_deviations, component_title
from servfix.checklist.models import InputType, STATUS_INPUT_TYPES
from servfix.checklist.tree import chosen_subpoint, is_group_member, walk_visible

STATUS_LABELS = {
    'ok': 'OK',
    'avvik': 'Avvik',
    'byttet': 'Byttet',
    'rengjort': 'Rengjort',
}
NOT_CHECKED = 'Ikke sjekket'
RENGJORT_LABELS = {'rengjort': 'Rengjort', 'ikke_rengjort': 'Ikke rengjort'}

ORE = Decimal('0.01')


def money(value) -> Decimal:
    """Round an amount half-up to whole øre."""
    return Decimal(value).quantize(ORE, rounding=ROUND_HALF_UP)


def _status_row(item, value):
    if not isinstance(value, dict) or not value.get('status'):
        return NOT_CHECKED, 'none', [], []
    status = value['status']
    remarks = []
    if value.get('dropdownValue'):
        remarks.append(value['dropdownValue'])
    if item.input_type is InputType.TEMPERATURE and value.get('temperature') is not None:
        remarks.append('{} °C'.format(format_number(value['temperature'])))
    if item.input_type is InputType.VIRKNINGSGRAD:
        temps = ['{}: {} °C'.format(key.upper(), format_number(value[key]))
                 for key in ('t2', 't3', 't7') if value.get(key) is not None]
        if temps:
            remarks.append(', '.join(temps))
        if value.get('virkningsgrad') is not None:
            remarks.append('Virkningsgrad {} %'.format(format_number(value['virkningsgrad'])))
    if value.get('comment'):
        remarks.append(value['comment'])
    return STATUS_LABELS.get(status, status), status, remarks, list(value.get('images') or [])


def format_item(item, responses: dict, parent=None) -> dict:
    """
    One checklist row: formatted status, remark and images.

    status_class is the raw status for status families ('ok', 'avvik', ...),
    'none' when unanswered and 'value' for plain value controls.
    """
    value = responses.get(item.id)
    input_type = item.input_type
    status, status_class, remarks, images = '', 'value', [], []

    if input_type in STATUS_INPUT_TYPES:
        status, status_class, remarks, images = _status_row(item, value)
    elif is_group_member(item, parent):
        chosen = chosen_subpoint(parent, responses) == item.id
        status, status_class = ('Valgt', 'ok') if chosen else ('', 'none')
    elif input_type is InputType.CHECKBOX:
        if isinstance(value, bool):
            status = 'Ja' if value else 'Nei'
        else:
            status, status_class = NOT_CHECKED, 'none'
    elif input_type is InputType.GROUP_SELECTION:
        chosen = chosen_subpoint(item, responses)
        member = next((sp for sp in item.subpoints if sp.id == chosen), None)
        if member:
            remarks.append(member.label)
        else:
            status, status_class = NOT_CHECKED, 'none'
    elif input_type is InputType.TILSTANDSGRAD_DROPDOWN and value:
        status = 'TG{}'.format(value)
    elif input_type is InputType.KONSEKVENSGRAD_DROPDOWN and value:
        status = 'KG{}'.format(value)
    elif input_type is InputType.RENGJORT_IKKE_RENGJORT and value:
        status = RENGJORT_LABELS.get(value, value)
        status_class = 'ok' if value == 'rengjort' else 'avvik'
    elif input_type is InputType.SWITCH_SELECT and value:
        status = value
    elif input_type is InputType.MULTI_CHECKBOX and value:
        remarks.append(', '.join(value))
    elif input_type is InputType.IMAGE_ONLY and value:
        images = list(value) if isinstance(value, list) else []
    elif isinstance(value, str) and value:
        remarks.append(value)
    elif input_type not in (InputType.COMMENT, InputType.TEXTAREA):
        status, status_class = NOT_CHECKED, 'none'

    return {
        'id': item.id,
        'label': item.label,
        'status': status,
        'status_class': status_class,
        'remark': ' - '.join(remarks),
        'images': images,
    }


def _product_lines(component):
    lines = []
    for product in component.products:
        lines.append({
            'name': product.name,
            'quantity': product.quantity,
            'price': money(product.price),
            'total': money(product.quantity * product.price),
        })
    return lines


def _work_lines(component):
    lines = []
    for work in component.additional_work:
        lines.append({
            'description': work.description,
            'hours': work.hours,
            'price': money(work.price),
            'total': money(work.hours * work.price),
        })
    return lines


def _drift_grid(template, component):
    config = template.drift_schedule_config
    if not template.has_drift_schedule or config is None:
        return None
    rows = []
    for day in config.days:
        values = component.drift_schedule.get(day, {})
        rows.append({'day': day, 'values': [values.get(f, '') for f in config.field_names]})
    return {'title': config.title, 'fields': list(config.field_names), 'rows': rows}


def compile_component(component, template, position, deviations=()) -> dict:
    """Renderer block for one component."""
    responses = component.checklist
    rows = []
    for entry in walk_visible(template.checklist_items, responses):
        row = format_item(entry.item, responses, entry.parent)
        row['depth'] = entry.depth
        rows.append(row)

    system_fields = [
        {'name': f.name, 'label': f.label, 'value': component.details.get(f.name, '')}
        for f in template.system_fields
    ]
    info = [
        {'label': 'Type', 'value': component.equipment_type or template.name},
        {'label': 'Navn', 'value': component.equipment_name},
        {'label': 'Plassering', 'value': component.equipment_location},
    ]
    info.extend({'label': f['label'], 'value': f['value']} for f in system_fields)

    products = additional_work = None
    if template.allow_products:
        lines = _product_lines(component)
        products = {'lines': lines, 'total': sum((l['total'] for l in lines), Decimal('0.00'))}
    if template.allow_additional_work:
        lines = _work_lines(component)
        additional_work = {'lines': lines, 'total': sum((l['total'] for l in lines), Decimal('0.00'))}

    return {
        'id': component.id,
        'position': position,
        'title': component_title(template, component, position),
        'template': {'id': template.id, 'name': template.name},
        'info': info,
        'system_fields': system_fields,
        'checklist': rows,
        'deviations': [d.model_dump() for d in deviations],
        'products': products,
        'additional_work': additional_work,
        'drift_schedule': _drift_grid(template, component),
        'photos': list(component.photos),
        'is_complete': is_complete(template, component),
    }


def compile_report(entries, header=None, overall_comment='', photos=None) -> dict:
    """
    Compile the renderer input for a whole report.

    Args:
        entries: ordered (component, template) pairs
        header: opaque header dict (company, customer, order, technician)
        overall_comment: summary comment for the report, kept only when a
            component's template allows comments
        photos: report level photo URLs

    Returns: dict with header, components, deviations, totals, summary, photos
    """
    deviations = []
    components = []
    comments_allowed = False
    for position, (component, template) in enumerate(entries, start=1):
        comments_allowed = comments_allowed or template.allow_comments
        own = component_deviations(component, template, position, len(deviations) + 1)
        deviations.extend(own)
        components.append(compile_component(component, template, position, own))

    products_total = sum(
        (c['products']['total'] for c in components if c['products']), Decimal('0.00'))
    work_total = sum(
        (c['additional_work']['total'] for c in components if c['additional_work']), Decimal('0.00'))

    return {
        'header': header or {},
        'components': components,
        'deviations': [d.model_dump() for d in deviations],
        'totals': {
            'products': products_total,
            'additional_work': work_total,
            'grand_total': products_total + work_total,
        },
        'summary': {
            'comment': (overall_comment or '').strip() if comments_allowed else '',
            'component_count': len(components),
            'deviation_count': len(deviations),
            'complete': all(c['is_complete'] for c in components),
        },
        'photos': list(photos or []),
    }
