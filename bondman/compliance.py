"""
Compliance validation — pure format checks on ACE identifiers.

Isolated, testable, reusable: no ORM access. Invoked before a preshipment
is created and before any regulatory field update is persisted.

Every rule runs; violations are collected so the caller can report all
problems at once. An empty list means the fields pass.

Examples:
    validate({'filing_district_port': '270'})   # [Violation('filing_district_port', ...)]
    validate({'filing_district_port': '2704'})  # []
    validate({'carrier_code': 'fdeg'})          # [Violation('carrier_code', ...)]
"""

import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass

DISTRICT_PORT_RE = re.compile(r'^[A-Za-z0-9]{4}$')
FILER_CODE_RE = re.compile(r'^[A-Za-z0-9]{3}$')
SCAC_RE = re.compile(r'^[A-Z]{4}$')

# Fields that must be present before an entry summary can be marked READY_TO_FILE
FILING_REQUIRED_FIELDS = (
    'filing_district_port',
    'entry_filer_code',
    'importer_of_record_number',
)

REGULATORY_FIELDS = frozenset({
    'filing_district_port',
    'entry_filer_code',
    'carrier_code',
    'weekly_entry',
    'zone_week_ending_date',
    'importer_of_record_number',
})


@dataclass(frozen=True)
class Violation:
    """One failed rule on one field."""

    field: str
    code: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def _present(value) -> bool:
    return value is not None and value != ''


def validate(fields: Mapping) -> list[Violation]:
    """
    Check regulatory identifiers.

    Args:
        fields: Mapping with any of filing_district_port, entry_filer_code,
            carrier_code, weekly_entry, zone_week_ending_date.
            Missing or empty codes are not checked.

    Returns:
        List of Violation (empty = pass)
    """
    violations = []

    port = fields.get('filing_district_port')
    if _present(port) and not DISTRICT_PORT_RE.match(str(port)):
        violations.append(Violation(
            'filing_district_port', 'invalid_format',
            'Filing District Port must be exactly 4 alphanumeric characters',
        ))

    filer = fields.get('entry_filer_code')
    if _present(filer) and not FILER_CODE_RE.match(str(filer)):
        violations.append(Violation(
            'entry_filer_code', 'invalid_format',
            'Entry Filer Code must be exactly 3 alphanumeric characters',
        ))

    carrier = fields.get('carrier_code')
    if _present(carrier) and not SCAC_RE.match(str(carrier)):
        violations.append(Violation(
            'carrier_code', 'invalid_format',
            'Carrier Code must be exactly 4 uppercase letters (SCAC format)',
        ))

    if fields.get('weekly_entry') and not _present(fields.get('zone_week_ending_date')):
        violations.append(Violation(
            'zone_week_ending_date', 'required',
            'Zone week ending date is required for weekly entries',
        ))

    return violations


def require_filing_fields(fields: Mapping) -> list[Violation]:
    """Missing identifiers that block an entry summary from READY_TO_FILE."""
    return [
        Violation(name, 'required', f"{name} is required before filing")
        for name in FILING_REQUIRED_FIELDS
        if not _present(fields.get(name))
    ]


def normalize(fields: Mapping) -> dict:
    """
    Upper-case district/port and filer codes.

    Run AFTER validate(). The carrier SCAC is not touched: lower-case
    SCAC input stays a violation.
    """
    cleaned = dict(fields)
    for name in ('filing_district_port', 'entry_filer_code'):
        if _present(cleaned.get(name)):
            cleaned[name] = str(cleaned[name]).upper()
    return cleaned
