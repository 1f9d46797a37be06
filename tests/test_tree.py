"""
Tests for visibility and traversal of the checklist tree.
"""
from servfix.checklist import resolve_visibility, visibility_map, walk_visible
from servfix.checklist.tree import chosen_subpoint, comparable_value


def visible_ids(template, responses):
    return [entry.item.id for entry in walk_visible(template.checklist_items, responses)]


class TestComparableValue:

    def test_booleans(self):
        assert comparable_value(True) == 'true'
        assert comparable_value(False) == 'false'

    def test_status_dict_compares_by_status(self):
        assert comparable_value({'status': 'avvik', 'comment': 'x'}) == 'avvik'

    def test_numbers(self):
        assert comparable_value(3.0) == '3'
        assert comparable_value(2.5) == '2.5'


class TestVisibility:

    def test_show_when_matches_captured_value(self, nested_template):
        item = nested_template.find_item('begrunnelse')
        assert resolve_visibility(item, {'modus': 'Av'}) is True
        assert resolve_visibility(item, {'modus': 'Auto'}) is False
        assert resolve_visibility(item, {}) is False

    def test_items_without_show_when_always_visible(self, nested_template):
        assert resolve_visibility(nested_template.find_item('filter'), {}) is True

    def test_unchecked_checkbox_hides_subpoints(self, nested_template):
        assert 'lager' not in visible_ids(nested_template, {})
        assert 'lager' not in visible_ids(nested_template, {'vifter': False})
        assert 'lager' in visible_ids(nested_template, {'vifter': True})

    def test_unchosen_group_member_hides_its_subtree(self, nested_template):
        ids = visible_ids(nested_template, {'gjenvinner': 'plate', 'plate': True})
        assert 'roterende' in ids
        assert 'drivreim' not in ids
        ids = visible_ids(nested_template, {'gjenvinner': 'roterende', 'roterende': True})
        assert 'drivreim' in ids

    def test_walk_is_in_template_order_with_depth(self, nested_template):
        responses = {'vifter': True, 'gjenvinner': 'roterende', 'roterende': True, 'modus': 'Av'}
        entries = list(walk_visible(nested_template.checklist_items, responses))
        assert [(e.item.id, e.depth) for e in entries] == [
            ('filter', 0), ('vifter', 0), ('lager', 1), ('gjenvinner', 0),
            ('roterende', 1), ('drivreim', 2), ('plate', 1),
            ('modus', 0), ('begrunnelse', 0), ('virkning', 0), ('notat', 0),
        ]

    def test_hidden_data_is_kept(self, nested_template):
        responses = {'vifter': False, 'lager': {'status': 'ok'}}
        visibility = visibility_map(nested_template.checklist_items, responses)
        assert visibility['lager'] is False
        assert responses['lager'] == {'status': 'ok'}


class TestChosenSubpoint:

    def test_group_value_wins(self, nested_template):
        group = nested_template.find_item('gjenvinner')
        assert chosen_subpoint(group, {'gjenvinner': 'plate', 'roterende': True}) == 'plate'

    def test_member_response_counts_as_chosen(self, nested_template):
        group = nested_template.find_item('gjenvinner')
        assert chosen_subpoint(group, {'plate': True}) == 'plate'
        assert chosen_subpoint(group, {'roterende': False}) is None

    def test_legacy_list_value(self, nested_template):
        group = nested_template.find_item('gjenvinner')
        assert chosen_subpoint(group, {'gjenvinner': ['plate']}) == 'plate'
