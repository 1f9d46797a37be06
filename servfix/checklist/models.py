"""
Pydantic models for checklist templates, components and deviations.

Templates travel as camelCase JSON (the shape the capture app and the template
editor exchange). Parsing normalizes legacy items and load_template() rejects
structural defects once, so every consumer works on the same closed tree.
"""
from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from servfix.checklist.errors import TemplateError


class InputType(str, Enum):
    """Closed set of checklist controls."""
    OK_AVVIK = 'ok_avvik'
    OK_BYTTET_AVVIK = 'ok_byttet_avvik'
    DROPDOWN_OK_AVVIK = 'dropdown_ok_avvik'
    DROPDOWN_OK_AVVIK_COMMENT = 'dropdown_ok_avvik_comment'
    TEMPERATURE = 'temperature'
    VIRKNINGSGRAD = 'virkningsgrad'
    NUMERIC = 'numeric'
    TEXT = 'text'
    TEXTAREA = 'textarea'
    COMMENT = 'comment'
    CHECKBOX = 'checkbox'
    GROUP_SELECTION = 'group_selection'
    SWITCH_SELECT = 'switch_select'
    DROPDOWN = 'dropdown'
    TILSTANDSGRAD_DROPDOWN = 'tilstandsgrad_dropdown'
    KONSEKVENSGRAD_DROPDOWN = 'konsekvensgrad_dropdown'
    RENGJORT_IKKE_RENGJORT = 'rengjort_ikke_rengjort'
    TIMER = 'timer'
    MULTI_CHECKBOX = 'multi_checkbox'
    IMAGE_ONLY = 'image_only'


# Controls that capture an OK/Avvik style status dict
STATUS_INPUT_TYPES = frozenset({
    InputType.OK_AVVIK,
    InputType.OK_BYTTET_AVVIK,
    InputType.DROPDOWN_OK_AVVIK,
    InputType.DROPDOWN_OK_AVVIK_COMMENT,
    InputType.TEMPERATURE,
    InputType.VIRKNINGSGRAD,
})

STATUSES = ('ok', 'avvik', 'byttet', 'rengjort')
STATUSES_NEEDING_COMMENT = frozenset({'avvik', 'byttet', 'rengjort'})

SWITCH_SELECT_OPTIONS = ['Auto', 'Sommer', 'Vinter', 'Av', 'På']
GRADE_OPTIONS = ['0', '1', '2', '3']
RENGJORT_OPTIONS = ['rengjort', 'ikke_rengjort']

DEFAULT_DRIFT_TITLE = 'Driftstider'
DEFAULT_DRIFT_DAYS = ['Mandag', 'Tirsdag', 'Onsdag', 'Torsdag', 'Fredag', 'Lørdag', 'Søndag']
DEFAULT_DRIFT_FIELDS = ['Start', 'Stopp']

LEGACY_INPUT_TYPES = {
    'ok_avvik_byttet': InputType.OK_BYTTET_AVVIK.value,
}


def slugify_template_id(name: str) -> str:
    """Derive the stable template id from its name ('Boligventilasjon 2' -> 'boligventilasjon_2')."""
    return re.sub(r'[^a-z0-9]+', '_', (name or '').lower())


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    def to_json(self) -> dict:
        """Dump as camelCase JSON-safe dict."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)


class SystemField(CamelModel):
    """Flat metadata field captured once per component."""
    name: str
    label: str = ''
    required: bool = False
    order: int = 0

    @model_validator(mode='after')
    def _default_label(self):
        if not self.label:
            self.label = self.name
        return self


class ShowWhen(CamelModel):
    parent_id: str
    parent_value: str

    @model_validator(mode='before')
    @classmethod
    def _stringify_value(cls, data):
        if isinstance(data, dict):
            key = 'parentValue' if 'parentValue' in data else 'parent_value'
            value = data.get(key)
            if isinstance(value, bool):
                data = {**data, key: 'true' if value else 'false'}
            elif isinstance(value, (int, float)):
                data = {**data, key: str(value)}
        return data


class DriftScheduleConfig(CamelModel):
    title: str = DEFAULT_DRIFT_TITLE
    days: list[str] = Field(default_factory=lambda: list(DEFAULT_DRIFT_DAYS))
    field_names: list[str] = Field(default_factory=lambda: list(DEFAULT_DRIFT_FIELDS), alias='fields')


class ChecklistItem(CamelModel):
    """Node in the checklist tree."""
    id: str
    label: str
    order: int = 0
    input_type: InputType
    required: bool = False
    has_subpoints: bool = False
    subpoints: list[ChecklistItem] = []
    dropdown_options: list[str] = []
    exclusive_group: str | None = None
    show_when: ShowWhen | None = None

    @model_validator(mode='before')
    @classmethod
    def _normalize_legacy(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if data.get('id') is not None and not isinstance(data['id'], str):
            data['id'] = str(data['id'])

        input_type = data.pop('input_type', None) or data.get('inputType')
        if not input_type:
            input_type = InputType.OK_AVVIK.value
        data['inputType'] = LEGACY_INPUT_TYPES.get(input_type, input_type)

        if not data.get('label'):
            data['label'] = data.get('text') or 'Sjekkpunkt {}'.format(data.get('id'))

        subpoints = data.get('subpoints') or []
        if data['inputType'] == InputType.GROUP_SELECTION.value:
            # Radio members are toggles unless authored otherwise
            subpoints = [
                {**sp, 'inputType': InputType.CHECKBOX.value}
                if isinstance(sp, dict) and not (sp.get('inputType') or sp.get('input_type')) else sp
                for sp in subpoints
            ]
        data['subpoints'] = subpoints
        if 'hasSubpoints' not in data and 'has_subpoints' not in data:
            data['hasSubpoints'] = bool(subpoints)

        if not data.get('dropdownOptions') and data.get('options'):
            data['dropdownOptions'] = data['options']
        return data

    @model_validator(mode='after')
    def _order_subpoints(self):
        self.subpoints = sorted(self.subpoints, key=lambda sp: sp.order)
        if self.input_type is InputType.GROUP_SELECTION:
            for sp in self.subpoints:
                if not sp.exclusive_group:
                    sp.exclusive_group = self.id
        return self

    @property
    def children(self) -> list[ChecklistItem]:
        """Subpoints that take part in evaluation."""
        if self.input_type is InputType.GROUP_SELECTION or self.has_subpoints:
            return self.subpoints
        return []

    @property
    def options(self) -> list[str]:
        if self.dropdown_options:
            return self.dropdown_options
        if self.input_type is InputType.SWITCH_SELECT:
            return SWITCH_SELECT_OPTIONS
        if self.input_type in (InputType.TILSTANDSGRAD_DROPDOWN, InputType.KONSEKVENSGRAD_DROPDOWN):
            return GRADE_OPTIONS
        if self.input_type is InputType.RENGJORT_IKKE_RENGJORT:
            return RENGJORT_OPTIONS
        return []


class ChecklistTemplate(CamelModel):
    """Schema of fields and checklist tree for one equipment type."""
    id: str
    name: str
    system_fields: list[SystemField] = []
    checklist_items: list[ChecklistItem] = []
    allow_products: bool = False
    allow_additional_work: bool = False
    allow_comments: bool = False
    has_drift_schedule: bool = False
    drift_schedule_config: DriftScheduleConfig | None = None

    @model_validator(mode='before')
    @classmethod
    def _fill_defaults(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get('id') and data.get('name'):
            data['id'] = slugify_template_id(data['name'])
        for key in ('systemFields', 'checklistItems'):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @model_validator(mode='after')
    def _order_and_schedule(self):
        self.system_fields = sorted(self.system_fields, key=lambda f: f.order)
        self.checklist_items = sorted(self.checklist_items, key=lambda i: i.order)
        if self.has_drift_schedule and self.drift_schedule_config is None:
            self.drift_schedule_config = DriftScheduleConfig()
        elif not self.has_drift_schedule:
            self.drift_schedule_config = None
        return self

    def iter_items(self):
        """Every item in the tree, depth-first in authored order."""
        stack = list(reversed(self.checklist_items))
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.subpoints))

    def find_item(self, item_id: str) -> ChecklistItem | None:
        for item in self.iter_items():
            if item.id == item_id:
                return item
        return None

    def structural_problems(self) -> list[str]:
        """Authoring defects that make the template unusable."""
        problems = []
        seen = set()
        for item in self.iter_items():
            if item.id in seen:
                problems.append('duplicate item id {!r}'.format(item.id))
            seen.add(item.id)
            if item.input_type is InputType.GROUP_SELECTION and not item.subpoints:
                problems.append('group_selection {!r} has no subpoints'.format(item.id))

        for item in self.iter_items():
            if item.show_when and item.show_when.parent_id not in seen:
                problems.append('item {!r} shows when unknown item {!r}'.format(
                    item.id, item.show_when.parent_id))
            if item.show_when and item.show_when.parent_id == item.id:
                problems.append('item {!r} shows when itself'.format(item.id))

        names = [f.name for f in self.system_fields]
        for name in sorted({n for n in names if names.count(n) > 1}):
            problems.append('duplicate system field {!r}'.format(name))
        return problems


def load_template(data: dict) -> ChecklistTemplate:
    """
    Parse and validate a template.

    Raises TemplateError for anything that is not a usable template.
    """
    label = (data or {}).get('id') or (data or {}).get('name') or '<unnamed>'
    try:
        template = ChecklistTemplate.model_validate(data)
    except ValidationError as e:
        problems = [
            '{}: {}'.format('.'.join(str(p) for p in err['loc']), err['msg'])
            for err in e.errors()
        ]
        raise TemplateError(
            'Invalid template {!r}: {}'.format(label, '; '.join(problems)),
            template_id=label, problems=problems
        ) from e

    problems = template.structural_problems()
    if problems:
        raise TemplateError(
            'Invalid template {!r}: {}'.format(template.id, '; '.join(problems)),
            template_id=template.id, problems=problems
        )
    return template


class ProductLine(CamelModel):
    name: str = ''
    quantity: Decimal = Decimal('1')
    price: Decimal = Decimal('0')


class WorkLine(CamelModel):
    description: str = ''
    hours: Decimal = Decimal('0')
    price: Decimal = Decimal('0')


class Component(CamelModel):
    """One filled-in checklist for one physical unit."""
    id: str | None = None
    equipment_type: str = ''
    equipment_name: str = ''
    equipment_location: str = ''
    details: dict[str, str] = {}
    checklist: dict[str, Any] = {}
    products: list[ProductLine] = []
    additional_work: list[WorkLine] = []
    drift_schedule: dict[str, dict[str, str]] = {}
    photos: list[str] = []

    @model_validator(mode='before')
    @classmethod
    def _legacy_details(cls, data: Any):
        # Older captures stored system fields as systemData / systemFields
        if isinstance(data, dict) and not data.get('details'):
            legacy = data.get('systemData') or data.get('systemFields')
            if isinstance(legacy, dict):
                data = {**data, 'details': legacy}
        return data


class ReportDocument(CamelModel):
    """Stored body of a service report."""
    components: list[Component] = []
    overall_comment: str = ''
    photos: list[str] = []


class Deviation(CamelModel):
    """Numbered avvik derived from a component response."""
    id: str
    number: int
    component_id: str | None = None
    component_name: str
    item_id: str
    checkpoint_label: str
    description: str
    images: list[str] = []
