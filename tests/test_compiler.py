"""
Tests for the report compiler.
"""
import random
from decimal import Decimal

import pytest

from servfix.checklist import Component, collect_component, compile_report, load_template, money
from servfix.checklist.compiler import format_item


@pytest.fixture
def ventilasjon(nested_template):
    return collect_component(nested_template, {
        'id': 'c1',
        'equipmentType': 'ventilasjon',
        'equipmentName': 'Aggregat 1',
        'details': {'aggregat': 'VX-400'},
        'checklist': {
            'filter': {'status': 'avvik', 'comment': 'Filter tett', 'images': ['f.jpg']},
            'vifter': True,
            'lager': {'status': 'ok'},
            'gjenvinner': 'plate',
            'modus': 'Auto',
            'virkning': {'status': 'ok', 't2': 0, 't3': 16, 't7': 20},
        },
        'products': [
            {'name': 'Filter', 'quantity': '3', 'price': '33.335'},
            {'name': 'Reim', 'quantity': '1', 'price': '120'},
        ],
        'additionalWork': [{'description': 'Rens', 'hours': '1.5', 'price': '850'}],
        'driftSchedule': {'Mandag': {'Start': '06:00', 'Stopp': '18:00'}},
        'photos': ['c1.jpg'],
    })


@pytest.fixture
def aggregat(simple_template):
    return Component(id='c2', details={'plassering': 'Tak'},
                     checklist={'i1': {'status': 'avvik', 'comment': 'Lekkasje'}})


class TestCompileReport:

    def test_structure(self, nested_template, simple_template, ventilasjon, aggregat):
        report = compile_report(
            [(ventilasjon, nested_template), (aggregat, simple_template)],
            header={'order_number': '10234'}, overall_comment='  Alt i orden  ', photos=['r.jpg'],
        )
        assert report['header'] == {'order_number': '10234'}
        assert [c['title'] for c in report['components']] == ['VX-400', 'Tak']
        assert report['summary']['comment'] == 'Alt i orden'
        assert report['summary']['deviation_count'] == 2
        assert report['photos'] == ['r.jpg']

    def test_deviations_numbered_across_components(self, nested_template, simple_template,
                                                   ventilasjon, aggregat):
        report = compile_report([(ventilasjon, nested_template), (aggregat, simple_template)])
        assert [(d['id'], d['description']) for d in report['deviations']] == [
            ('001', 'Filter tett'), ('002', 'Lekkasje'),
        ]
        assert [d['id'] for d in report['components'][1]['deviations']] == ['002']

    def test_checklist_rows(self, nested_template, ventilasjon):
        component = compile_report([(ventilasjon, nested_template)])['components'][0]
        rows = {row['id']: row for row in component['checklist']}
        assert rows['filter']['status'] == 'Avvik'
        assert rows['filter']['status_class'] == 'avvik'
        assert rows['filter']['images'] == ['f.jpg']
        assert rows['lager']['depth'] == 1
        assert rows['vifter']['status'] == 'Ja'
        assert rows['gjenvinner']['remark'] == 'Platevarmeveksler'
        assert rows['plate']['status'] == 'Valgt'
        assert rows['modus']['status'] == 'Auto'
        assert 'Virkningsgrad 80 %' in rows['virkning']['remark']
        assert 'begrunnelse' not in rows
        assert 'drivreim' not in rows

    def test_money(self, nested_template, ventilasjon):
        report = compile_report([(ventilasjon, nested_template)])
        component = report['components'][0]
        lines = component['products']['lines']
        assert lines[0]['total'] == Decimal('100.01')
        assert lines[0]['price'] == Decimal('33.34')
        assert component['products']['total'] == Decimal('220.01')
        assert component['additional_work']['total'] == Decimal('1275.00')
        assert report['totals'] == {
            'products': Decimal('220.01'),
            'additional_work': Decimal('1275.00'),
            'grand_total': Decimal('1495.01'),
        }

    def test_grand_total_is_sum_of_lines(self, nested_template, ventilasjon):
        report = compile_report([(ventilasjon, nested_template), (ventilasjon, nested_template)])
        line_totals = [
            line['total']
            for c in report['components']
            for section in ('products', 'additional_work')
            for line in c[section]['lines']
        ]
        assert report['totals']['grand_total'] == sum(line_totals)

    def test_sections_gated_by_template(self, simple_template, aggregat):
        component = compile_report([(aggregat, simple_template)])['components'][0]
        assert component['products'] is None
        assert component['additional_work'] is None
        assert component['drift_schedule'] is None

    def test_drift_grid(self, nested_template, ventilasjon):
        grid = compile_report([(ventilasjon, nested_template)])['components'][0]['drift_schedule']
        assert grid['title'] == 'Driftstider'
        assert grid['fields'] == ['Start', 'Stopp']
        assert grid['rows'][0] == {'day': 'Mandag', 'values': ['06:00', '18:00']}
        assert grid['rows'][1] == {'day': 'Tirsdag', 'values': ['', '']}
        assert len(grid['rows']) == 7

    def test_info_block(self, nested_template, ventilasjon):
        info = compile_report([(ventilasjon, nested_template)])['components'][0]['info']
        assert {'label': 'Navn', 'value': 'Aggregat 1'} in info
        assert {'label': 'Aggregat', 'value': 'VX-400'} in info

    def test_money_rounds_half_up(self):
        assert money(Decimal('0.005')) == Decimal('0.01')
        assert money(Decimal('2.675')) == Decimal('2.68')


class TestFormatItem:

    @pytest.fixture
    def template(self):
        return load_template({
            'id': 't', 'name': 'T',
            'checklistItems': [
                {'id': 'tg', 'label': 'TG', 'inputType': 'tilstandsgrad_dropdown'},
                {'id': 'kg', 'label': 'KG', 'inputType': 'konsekvensgrad_dropdown'},
                {'id': 'ren', 'label': 'Ren', 'inputType': 'rengjort_ikke_rengjort'},
                {'id': 'temp', 'label': 'Temp', 'inputType': 'temperature'},
                {'id': 'cb', 'label': 'CB', 'inputType': 'checkbox'},
                {'id': 'num', 'label': 'Num', 'inputType': 'numeric'},
                {'id': 'multi', 'label': 'Multi', 'inputType': 'multi_checkbox'},
            ],
        })

    def row(self, template, item_id, responses):
        return format_item(template.find_item(item_id), responses)

    def test_grades(self, template):
        assert self.row(template, 'tg', {'tg': '2'})['status'] == 'TG2'
        assert self.row(template, 'kg', {'kg': '0'})['status'] == 'KG0'

    def test_rengjort(self, template):
        assert self.row(template, 'ren', {'ren': 'ikke_rengjort'})['status'] == 'Ikke rengjort'

    def test_temperature_remark(self, template):
        row = self.row(template, 'temp', {'temp': {'status': 'ok', 'temperature': 21.5, 'comment': 'Fin'}})
        assert row['status'] == 'OK'
        assert row['remark'] == '21.5 °C - Fin'

    def test_unanswered(self, template):
        assert self.row(template, 'cb', {})['status'] == 'Ikke sjekket'
        assert self.row(template, 'temp', {})['status_class'] == 'none'
        assert self.row(template, 'cb', {'cb': False})['status'] == 'Nei'

    def test_values(self, template):
        assert self.row(template, 'num', {'num': '42'})['remark'] == '42'
        assert self.row(template, 'multi', {'multi': ['a', 'b']})['remark'] == 'a, b'


class TestSummaryComment:

    def test_kept_when_a_template_allows_comments(self, nested_template, simple_template,
                                                 ventilasjon, aggregat):
        report = compile_report([(aggregat, simple_template), (ventilasjon, nested_template)],
                                overall_comment='Alt fint')
        assert report['summary']['comment'] == 'Alt fint'

    def test_dropped_when_no_template_allows_comments(self):
        template = load_template({
            'id': 't', 'name': 'T', 'allowComments': False,
            'checklistItems': [{'id': 'a', 'label': 'A', 'inputType': 'ok_avvik'}],
        })
        report = compile_report([(Component(id='c'), template)], overall_comment='Alt fint')
        assert report['summary']['comment'] == ''

    def test_no_components(self):
        assert compile_report([], overall_comment='Alt fint')['summary']['comment'] == ''


class TestRandomTotals:
    """Displayed totals always equal the sum of the displayed lines."""

    def amount(self, rng, places=3):
        return str(Decimal(rng.randint(0, 10 ** (places + 4))) / (10 ** places))

    def raw_lines(self, rng):
        products = [
            {'name': 'Vare {}'.format(n), 'quantity': str(rng.randint(1, 12)), 'price': self.amount(rng)}
            for n in range(rng.randint(0, 6))
        ]
        work = [
            {'description': 'Arbeid {}'.format(n), 'hours': str(Decimal(rng.randint(1, 80)) / 4),
             'price': self.amount(rng)}
            for n in range(rng.randint(0, 4))
        ]
        return products, work

    @pytest.mark.parametrize('seed', [3, 11, 99, 2026])
    def test_totals_match_lines(self, nested_template, simple_template, seed):
        rng = random.Random(seed)
        entries = []
        for n in range(rng.randint(1, 4)):
            products, work = self.raw_lines(rng)
            template = nested_template if rng.random() < 0.75 else simple_template
            entries.append((collect_component(template, {
                'id': 'c{}'.format(n), 'products': products, 'additionalWork': work,
            }), template))

        report = compile_report(entries)
        all_products, all_work = [], []
        for compiled, (component, template) in zip(report['components'], entries):
            if not template.allow_products:
                assert compiled['products'] is None
                continue
            lines = compiled['products']['lines']
            assert len(lines) == len(component.products)
            for line, product in zip(lines, component.products):
                assert line['total'] == money(product.quantity * product.price)
            assert compiled['products']['total'] == sum((l['total'] for l in lines), Decimal('0'))
            all_products.extend(l['total'] for l in lines)

            work_lines = compiled['additional_work']['lines']
            assert len(work_lines) == len(component.additional_work)
            for line, work in zip(work_lines, component.additional_work):
                assert line['total'] == money(work.hours * work.price)
            assert compiled['additional_work']['total'] == sum(
                (l['total'] for l in work_lines), Decimal('0'))
            all_work.extend(l['total'] for l in work_lines)

        totals = report['totals']
        assert totals['products'] == sum(all_products, Decimal('0'))
        assert totals['additional_work'] == sum(all_work, Decimal('0'))
        assert totals['grand_total'] == totals['products'] + totals['additional_work']
        for value in totals.values():
            assert value == value.quantize(Decimal('0.01'))
