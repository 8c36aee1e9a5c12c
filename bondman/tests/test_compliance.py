"""
Tests for ACE identifier validation.
"""

from datetime import date

import pytest

from bondman import compliance


def codes(violations):
    return {(v.field, v.code) for v in violations}


class TestValidate:

    @pytest.mark.parametrize('value,ok', [
        ('2704', True),
        ('52A1', True),
        ('270', False),
        ('27041', False),
        ('27-4', False),
    ])
    def test_district_port(self, value, ok):
        assert (compliance.validate({'filing_district_port': value}) == []) is ok

    @pytest.mark.parametrize('value,ok', [
        ('ABC', True),
        ('a1c', True),
        ('AB', False),
        ('ABCD', False),
    ])
    def test_filer_code(self, value, ok):
        assert (compliance.validate({'entry_filer_code': value}) == []) is ok

    @pytest.mark.parametrize('value,ok', [
        ('FDEG', True),
        ('fdeg', False),
        ('FDE', False),
        ('FD3G', False),
    ])
    def test_carrier_scac(self, value, ok):
        assert (compliance.validate({'carrier_code': value}) == []) is ok

    def test_weekly_entry_needs_week_ending(self):
        violations = compliance.validate({'weekly_entry': True})

        assert codes(violations) == {('zone_week_ending_date', 'required')}

    def test_weekly_entry_with_week_ending(self):
        assert compliance.validate({'weekly_entry': True, 'zone_week_ending_date': date(2024, 3, 8)}) == []

    def test_empty_codes_are_not_checked(self):
        assert compliance.validate({'filing_district_port': '', 'carrier_code': None}) == []

    def test_collects_every_violation(self):
        violations = compliance.validate({
            'filing_district_port': '270',
            'entry_filer_code': 'TOOLONG',
            'carrier_code': 'fdeg',
            'weekly_entry': True,
        })

        assert codes(violations) == {
            ('filing_district_port', 'invalid_format'),
            ('entry_filer_code', 'invalid_format'),
            ('carrier_code', 'invalid_format'),
            ('zone_week_ending_date', 'required'),
        }

    def test_violation_as_dict(self):
        violation = compliance.validate({'carrier_code': 'x'})[0]

        assert violation.as_dict()['field'] == 'carrier_code'
        assert 'SCAC' in violation.as_dict()['message']


class TestFilingFields:

    def test_missing(self):
        missing = compliance.require_filing_fields({'filing_district_port': '2704'})

        assert [v.field for v in missing] == ['entry_filer_code', 'importer_of_record_number']

    def test_complete(self):
        assert compliance.require_filing_fields({
            'filing_district_port': '2704',
            'entry_filer_code': 'ABC',
            'importer_of_record_number': '12-3456789AB',
        }) == []


class TestNormalize:

    def test_uppercases_port_and_filer(self):
        cleaned = compliance.normalize({'filing_district_port': '52a1', 'entry_filer_code': 'abc'})

        assert cleaned == {'filing_district_port': '52A1', 'entry_filer_code': 'ABC'}

    def test_leaves_other_fields(self):
        cleaned = compliance.normalize({'carrier_code': 'FDEG', 'notes': 'keep me'})

        assert cleaned == {'carrier_code': 'FDEG', 'notes': 'keep me'}
