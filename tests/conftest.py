"""
Shared fixtures: Flask app on a temporary sqlite file and sample templates.
"""
import pytest

from servfix import create_app
from servfix.checklist import load_template


# ============================================================================
# Sample templates
# ============================================================================

SIMPLE_TEMPLATE = {
    'id': 'aggregat',
    'name': 'Aggregat',
    'systemFields': [
        {'name': 'plassering', 'label': 'Plassering', 'required': True, 'order': 1},
    ],
    'checklistItems': [
        {'id': 'i1', 'label': 'Filter', 'order': 1, 'inputType': 'ok_avvik', 'required': True},
    ],
    'allowComments': True,
}

NESTED_TEMPLATE = {
    'id': 'ventilasjon',
    'name': 'Ventilasjon',
    'systemFields': [
        {'name': 'aggregat', 'label': 'Aggregat', 'required': True, 'order': 1},
        {'name': 'plassering', 'label': 'Plassering', 'required': False, 'order': 2},
    ],
    'checklistItems': [
        {'id': 'filter', 'label': 'Filter', 'order': 1, 'inputType': 'ok_byttet_avvik', 'required': True},
        {
            'id': 'vifter', 'label': 'Vifter kontrollert', 'order': 2, 'inputType': 'checkbox', 'required': True,
            'subpoints': [
                {'id': 'lager', 'label': 'Lager', 'order': 1, 'inputType': 'ok_avvik', 'required': True},
            ],
        },
        {
            'id': 'gjenvinner', 'label': 'Type gjenvinner', 'order': 3,
            'inputType': 'group_selection', 'required': True,
            'subpoints': [
                {
                    'id': 'roterende', 'label': 'Roterende', 'order': 1,
                    'subpoints': [
                        {'id': 'drivreim', 'label': 'Drivreim', 'order': 1,
                         'inputType': 'ok_byttet_avvik', 'required': True},
                    ],
                },
                {'id': 'plate', 'label': 'Platevarmeveksler', 'order': 2},
            ],
        },
        {'id': 'modus', 'label': 'Driftsmodus', 'order': 4, 'inputType': 'switch_select', 'required': True},
        {
            'id': 'begrunnelse', 'label': 'Begrunnelse', 'order': 5, 'inputType': 'text', 'required': True,
            'showWhen': {'parentId': 'modus', 'parentValue': 'Av'},
        },
        {'id': 'virkning', 'label': 'Virkningsgrad', 'order': 6, 'inputType': 'virkningsgrad'},
        {'id': 'notat', 'label': 'Notat', 'order': 7, 'inputType': 'textarea'},
    ],
    'allowProducts': True,
    'allowAdditionalWork': True,
    'allowComments': True,
    'hasDriftSchedule': True,
}


@pytest.fixture
def simple_template():
    return load_template(SIMPLE_TEMPLATE)


@pytest.fixture
def nested_template():
    return load_template(NESTED_TEMPLATE)


# ============================================================================
# Flask app
# ============================================================================

@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(tmp_path / 'servfix.db'),
        'PDF_OUTPUT_DIR': str(tmp_path / 'reports'),
        'COMPANY_NAME': 'Servfix AS',
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def stored_templates(app):
    """Store the sample templates next to the seeded ones."""
    from servfix.services import template_store
    with app.app_context():
        template_store.save_template(SIMPLE_TEMPLATE)
        template_store.save_template(NESTED_TEMPLATE)
    return app
