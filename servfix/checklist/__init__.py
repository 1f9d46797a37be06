"""
Checklist engine shared by the capture API and the report renderer.
No Flask or database imports below this package.
"""
from servfix.checklist.errors import ChecklistError, TemplateError
from servfix.checklist.models import (
    ChecklistItem, ChecklistTemplate, Component, Deviation, InputType,
    ReportDocument, load_template,
)
from servfix.checklist.resolver import FALLBACK_TEMPLATE_ID, fallback_template, resolve_template
from servfix.checklist.tree import resolve_visibility, visibility_map, walk_visible
from servfix.checklist.collector import calculate_efficiency, collect_component
from servfix.checklist.completion import find_incomplete, is_complete, item_states
from servfix.checklist.deviations import component_title, extract_deviations
from servfix.checklist.compiler import compile_report, money

__all__ = [
    'ChecklistError', 'TemplateError',
    'ChecklistItem', 'ChecklistTemplate', 'Component', 'Deviation', 'InputType',
    'ReportDocument', 'load_template',
    'FALLBACK_TEMPLATE_ID', 'fallback_template', 'resolve_template',
    'resolve_visibility', 'visibility_map', 'walk_visible',
    'calculate_efficiency', 'collect_component',
    'find_incomplete', 'is_complete', 'item_states',
    'component_title', 'extract_deviations',
    'compile_report', 'money',
]
