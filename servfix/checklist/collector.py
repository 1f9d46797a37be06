"""
Response collector - turns raw per-field capture state into a Component.

Walks the template tree (never the raw map), so unknown keys are dropped and
blank input is "no response". Collecting is idempotent: feeding a collected
Component back in yields the same Component.
"""
import logging
import math
import re
from decimal import Decimal, InvalidOperation

from servfix.checklist.models import (
    Component, InputType, ProductLine, WorkLine,
    STATUSES, STATUS_INPUT_TYPES,
)
from servfix.checklist.tree import is_group_member

logger = logging.getLogger(__name__)

TRUE_STRINGS = frozenset({'true', 'on', '1', 'yes', 'ja'})
FALSE_STRINGS = frozenset({'false', 'off', '0', 'no', 'nei'})
EMPTY_TIMER = '00:00:00'


def label_key(label: str) -> str:
    """Legacy response key derived from an item label ('Vifte motor' -> 'vifte_motor')."""
    key = re.sub(r'\s+', '_', (label or '').strip().lower())
    return re.sub(r'[^0-9a-z_æøå]', '', key)


def format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def calculate_efficiency(t2, t3, t7):
    """
    Heat recovery efficiency (virkningsgrad) in percent.
    T2 = outdoor, T3 = supply after recovery, T7 = extract.
    """
    if t2 is None or t3 is None or t7 is None:
        return None
    if t7 == t2:
        return 0.0
    efficiency = (t3 - t2) / (t7 - t2) * 100
    return math.floor(efficiency * 10 + 0.5) / 10


def _text(value):
    """Non-blank stripped string or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return format_number(value)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _to_float(value):
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def _to_decimal(value, default=None):
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace(',', '.').replace(' ', '')
        if not value:
            return default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return number if number.is_finite() else default


def _to_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return None


def _image_urls(value) -> list:
    if not value:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    urls = []
    for entry in value:
        url = entry.get('url') if isinstance(entry, dict) else entry
        url = _text(url)
        if url and url not in urls:
            urls.append(url)
    return urls


def _raw_value(item, raw_checklist: dict):
    if item.id in raw_checklist:
        return raw_checklist[item.id]
    return raw_checklist.get(label_key(item.label))


def _status_response(item, value):
    if isinstance(value, str):
        value = {'status': value}
    if not isinstance(value, dict):
        return None

    result = {}
    status = _text(value.get('status'))
    if status:
        status = status.lower()
        if status in STATUSES:
            result['status'] = status
        else:
            logger.warning("Dropping unknown status %r on item %s", status, item.id)

    for key in ('comment', 'avvikComment', 'byttetComment'):
        comment = _text(value.get(key))
        if comment:
            result['comment'] = comment
            break

    images = _image_urls(value.get('images'))
    if images:
        result['images'] = images

    if item.input_type is InputType.TEMPERATURE:
        temperature = _to_float(value.get('temperature', value.get('value')))
        if temperature is not None:
            result['temperature'] = temperature
    elif item.input_type is InputType.VIRKNINGSGRAD:
        temps = {key: _to_float(value.get(key)) for key in ('t2', 't3', 't7')}
        result.update({key: temp for key, temp in temps.items() if temp is not None})
        efficiency = calculate_efficiency(temps['t2'], temps['t3'], temps['t7'])
        if efficiency is not None:
            result['virkningsgrad'] = efficiency
    elif item.input_type in (InputType.DROPDOWN_OK_AVVIK, InputType.DROPDOWN_OK_AVVIK_COMMENT):
        choice = _text(value.get('dropdownValue'))
        if choice:
            result['dropdownValue'] = choice

    return result or None


def _option_response(item, value):
    text = _text(value)
    if text is None:
        return None
    if item.input_type in (InputType.TILSTANDSGRAD_DROPDOWN, InputType.KONSEKVENSGRAD_DROPDOWN):
        text = re.sub(r'^(tg|kg)\s*', '', text, flags=re.IGNORECASE)
    options = item.options
    if not options:
        return text
    for option in options:
        if option.lower() == text.lower():
            return option
    logger.warning("Dropping value %r outside the options of item %s", text, item.id)
    return None


def normalize_response(item, value):
    """Canonical response for one item, or None when there is no answer."""
    input_type = item.input_type
    if input_type in STATUS_INPUT_TYPES:
        return _status_response(item, value)
    if input_type is InputType.CHECKBOX:
        return _to_bool(value)
    if input_type is InputType.MULTI_CHECKBOX:
        values = value if isinstance(value, list) else [value]
        choices = [text for text in (_text(v) for v in values) if text]
        return choices or None
    if input_type is InputType.IMAGE_ONLY:
        if value is True:
            return True
        return _image_urls(value) or None
    if input_type is InputType.TIMER:
        text = _text(value)
        return None if text in (None, EMPTY_TIMER) else text
    if input_type in (InputType.NUMERIC, InputType.TEXT, InputType.TEXTAREA, InputType.COMMENT):
        return _text(value)
    return _option_response(item, value)


def _chosen_member(group, raw_checklist: dict):
    member_ids = [sp.id for sp in group.subpoints]
    value = _raw_value(group, raw_checklist)
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate in member_ids:
            return candidate
    for sp in group.subpoints:
        member_value = _raw_value(sp, raw_checklist)
        if member_value == sp.id or _to_bool(member_value):
            return sp.id
    return None


def _collect_items(items, raw_checklist: dict, out: dict, parent=None):
    for item in items:
        if is_group_member(item, parent):
            pass  # recorded by the group
        elif item.input_type is InputType.GROUP_SELECTION:
            chosen = _chosen_member(item, raw_checklist)
            if chosen:
                out[item.id] = chosen
                out[chosen] = True
        else:
            response = normalize_response(item, _raw_value(item, raw_checklist))
            if response is not None:
                out[item.id] = response
        # capture is sticky: hidden subtrees keep their answers
        _collect_items(item.subpoints, raw_checklist, out, item)


def _collect_details(template, raw: dict) -> dict:
    raw_details = raw.get('details') or raw.get('systemData') or raw.get('systemFields') or {}
    if not isinstance(raw_details, dict):
        return {}
    details = {}
    for field in template.system_fields:
        text = _text(raw_details.get(field.name))
        if text:
            details[field.name] = text
    return details


def _collect_products(raw_products) -> list:
    products = []
    for entry in raw_products or []:
        if not isinstance(entry, dict):
            continue
        name = _text(entry.get('name')) or ''
        quantity = _to_decimal(entry.get('quantity'), Decimal('1'))
        price = _to_decimal(entry.get('price'), Decimal('0'))
        if name or quantity > 0 or price > 0:
            products.append(ProductLine(name=name, quantity=quantity, price=price))
    return products


def _collect_additional_work(raw_work) -> list:
    work = []
    for entry in raw_work or []:
        if not isinstance(entry, dict):
            continue
        description = _text(entry.get('description'))
        hours = _to_decimal(entry.get('hours'))
        if description and hours is not None and hours > 0:
            price = _to_decimal(entry.get('price'), Decimal('0'))
            work.append(WorkLine(description=description, hours=hours, price=price))
        elif description or hours:
            logger.info("Ignoring partially filled additional work line: %r", entry)
    return work


def _collect_drift_schedule(template, raw_schedule) -> dict:
    config = template.drift_schedule_config
    if config is None or not isinstance(raw_schedule, dict):
        return {}
    schedule = {}
    for day in config.days:
        raw_day = raw_schedule.get(day) or raw_schedule.get(day.lower())
        if not isinstance(raw_day, dict):
            continue
        values = {}
        for field in config.field_names:
            text = _text(raw_day.get(field, raw_day.get(field.lower())))
            if text:
                values[field] = text
        if values:
            schedule[day] = values
    return schedule


def collect_component(template, raw) -> Component:
    """
    Build a Component from raw capture state for the given template.

    raw is the JSON the capture app posts (or a previously collected
    Component): details, checklist, products, additionalWork, driftSchedule,
    photos plus the equipment identity fields.
    """
    if isinstance(raw, Component):
        raw = raw.to_json()
    raw = raw or {}

    raw_checklist = raw.get('checklist') or {}
    responses = {}
    if isinstance(raw_checklist, dict):
        _collect_items(template.checklist_items, raw_checklist, responses)

    products = _collect_products(raw.get('products')) if template.allow_products else []
    additional_work = (
        _collect_additional_work(raw.get('additionalWork')) if template.allow_additional_work else []
    )

    return Component(
        id=_text(raw.get('id')),
        equipment_type=_text(raw.get('equipmentType')) or '',
        equipment_name=_text(raw.get('equipmentName')) or '',
        equipment_location=_text(raw.get('equipmentLocation')) or '',
        details=_collect_details(template, raw),
        checklist=responses,
        products=products,
        additional_work=additional_work,
        drift_schedule=_collect_drift_schedule(template, raw.get('driftSchedule')),
        photos=_image_urls(raw.get('photos')),
    )
