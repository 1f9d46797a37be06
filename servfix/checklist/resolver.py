"""
Template resolver - picks the checklist template for an equipment instance.
Never fails: a miss degrades to the built-in fallback template with a warning.
"""
import logging

from servfix.checklist.models import ChecklistTemplate, SystemField

logger = logging.getLogger(__name__)

FALLBACK_TEMPLATE_ID = 'standard'


def fallback_template() -> ChecklistTemplate:
    """Built-in template used when no authored template matches."""
    return ChecklistTemplate(
        id=FALLBACK_TEMPLATE_ID,
        name='Standard service',
        system_fields=[
            SystemField(name='beskrivelse', label='Beskrivelse', required=True, order=1),
        ],
        checklist_items=[],
        allow_products=True,
        allow_additional_work=True,
        allow_comments=True,
        has_drift_schedule=False,
    )


def _name_matches(needle: str, template_name: str) -> bool:
    if not needle or not template_name:
        return False
    return needle in template_name or template_name in needle


def resolve_template(templates, equipment_type, equipment_name=None):
    """
    Resolve the template for an equipment type (and optional display name).

    Matching order, first match wins:
    1. exact case-insensitive match of the type against template id
    2. case-insensitive substring match either way between the type or the
       name and the template name
    3. the fallback template

    Returns: (template, warning) - warning is None unless the fallback was used
    """
    type_key = (equipment_type or '').strip().lower()
    name_key = (equipment_name or '').strip().lower()
    templates = list(templates or [])

    if type_key:
        for template in templates:
            if template.id.lower() == type_key:
                return template, None

    for template in templates:
        template_name = template.name.lower()
        if _name_matches(type_key, template_name) or _name_matches(name_key, template_name):
            return template, None

    warning = 'Ingen sjekkliste funnet for type: {}. Bruker standard mal.'.format(
        equipment_type or equipment_name or '(ukjent)'
    )
    logger.warning(
        "No checklist template for type=%r name=%r among %d templates, using fallback",
        equipment_type, equipment_name, len(templates)
    )
    return fallback_template(), warning
