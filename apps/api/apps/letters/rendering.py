"""
Print context for a letter.

The client-side template draws the page; this module hands it everything
it needs already labelled and formatted: letterhead, number, applicant rows,
payload rows and the signer block.
"""
from datetime import date, datetime

from django.conf import settings
from django.utils import timezone

from apps.letters.catalog import get_letter_type
from apps.letters.models import LetterStatusChoices

NUMBER_PLACEHOLDER = '........................'


def format_date(value):
    """dd/MM/yyyy, or '-' when there is no date."""
    if not value:
        return '-'
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return '-'
    if isinstance(value, datetime):
        value = timezone.localtime(value) if timezone.is_aware(value) else value
        value = value.date()
    return value.strftime('%d/%m/%Y')


def _row(label, value):
    return {'label': label, 'value': value if value not in (None, '') else '-'}


def applicant_rows(letter):
    birth = ', '.join(
        part for part in (letter.applicant_birth_place, format_date(letter.applicant_birth_date)) if part and part != '-'
    )
    return [
        _row('Nama', letter.applicant_name),
        _row('NIK', letter.applicant_national_id),
        _row('Tempat/Tanggal Lahir', birth),
        _row('Jenis Kelamin', letter.applicant_gender),
        _row('Agama', letter.applicant_religion),
        _row('Pekerjaan', letter.applicant_occupation),
        _row('Status Perkawinan', letter.applicant_marital_status),
        _row('Kewarganegaraan', letter.applicant_nationality),
        _row('Alamat', letter.applicant_address),
    ]


def payload_rows(letter):
    entry = get_letter_type(letter.letter_type)
    if entry is None:
        return [_row(key, value) for key, value in (letter.payload or {}).items()]

    rows = []
    for definition in entry.fields:
        value = (letter.payload or {}).get(definition.name)
        if value in (None, ''):
            continue
        if definition.kind == 'date':
            value = format_date(value)
        rows.append(_row(definition.label, value))
    return rows


def build_print_context(letter):
    entry = get_letter_type(letter.letter_type)
    issued_on = letter.completed_at or timezone.now()

    return {
        'letterhead': {
            'lines': list(settings.LETTERHEAD_LINES),
            'office_name': settings.LETTER_OFFICE_NAME,
            'address': settings.LETTER_OFFICE_ADDRESS,
        },
        'title': (entry.label if entry else letter.letter_type).upper(),
        'document_number': letter.document_number or NUMBER_PLACEHOLDER,
        'is_final': letter.status == LetterStatusChoices.COMPLETED,
        'status': letter.status,
        'applicant': applicant_rows(letter),
        'details': payload_rows(letter),
        'notes': letter.notes,
        'place_and_date': f'{settings.LETTER_ISSUE_PLACE}, {format_date(issued_on)}',
        'signer': {
            'name': letter.signer_name,
            'title': letter.signer_title,
            'employee_number': letter.signer_employee_number,
        },
        'dates': {
            'created_at': format_date(letter.created_at),
            'submitted_at': format_date(letter.submitted_at),
            'completed_at': format_date(letter.completed_at),
        },
    }
