"""
Tests for template resolution.
"""
import pytest

from servfix.checklist import FALLBACK_TEMPLATE_ID, load_template, resolve_template


@pytest.fixture
def templates():
    return [
        load_template({'id': 'boligventilasjon', 'name': 'Boligventilasjon'}),
        load_template({'id': 'vp_luft', 'name': 'Varmepumpe luft-luft'}),
        load_template({'id': 'kjoleanlegg', 'name': 'Kjøleanlegg'}),
    ]


class TestResolveTemplate:

    def test_exact_id_match_is_case_insensitive(self, templates):
        template, warning = resolve_template(templates, 'VP_Luft')
        assert template.id == 'vp_luft'
        assert warning is None

    def test_type_substring_of_name(self, templates):
        template, warning = resolve_template(templates, 'varmepumpe')
        assert template.id == 'vp_luft'
        assert warning is None

    def test_name_contains_template_name(self, templates):
        template, _ = resolve_template(templates, 'ukjent', 'Boligventilasjon 3. etasje')
        assert template.id == 'boligventilasjon'

    def test_id_match_wins_over_earlier_name_match(self):
        templates = [
            load_template({'id': 'a', 'name': 'Kjøleanlegg stort'}),
            load_template({'id': 'kjoleanlegg', 'name': 'Annet'}),
        ]
        template, _ = resolve_template(templates, 'kjoleanlegg')
        assert template.id == 'kjoleanlegg'

    def test_fallback_with_warning(self, templates):
        template, warning = resolve_template(templates, 'Brannspjeld')
        assert template.id == FALLBACK_TEMPLATE_ID
        assert template.name == 'Standard service'
        assert 'Brannspjeld' in warning
        assert template.allow_products and template.allow_additional_work and template.allow_comments
        assert [f.name for f in template.system_fields] == ['beskrivelse']
        assert template.system_fields[0].required
        assert template.checklist_items == []

    def test_fallback_logs_warning(self, templates, caplog):
        with caplog.at_level('WARNING', logger='servfix.checklist.resolver'):
            resolve_template(templates, 'Brannspjeld')
        assert 'fallback' in caplog.text

    @pytest.mark.parametrize('equipment_type, equipment_name', [
        ('', None),
        (None, None),
        ('', ''),
    ])
    def test_empty_input_never_matches(self, templates, equipment_type, equipment_name):
        template, warning = resolve_template(templates, equipment_type, equipment_name)
        assert template.id == FALLBACK_TEMPLATE_ID
        assert warning

    def test_no_templates(self):
        template, warning = resolve_template([], 'Boligventilasjon')
        assert template.id == FALLBACK_TEMPLATE_ID
        assert warning

    def test_fallback_iff_no_match(self, templates):
        for candidate in ['boligventilasjon', 'luft', 'Kjøle', 'xyz', 'vp', 'anlegg']:
            template, warning = resolve_template(templates, candidate)
            matched = any(
                t.id == candidate.lower() or candidate.lower() in t.name.lower()
                or t.name.lower() in candidate.lower()
                for t in templates
            )
            assert (warning is None) == matched
            assert (template.id == FALLBACK_TEMPLATE_ID) == (not matched)
