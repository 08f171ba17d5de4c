"""
Tests for official document number allocation.
"""
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.core.exceptions import DuplicateNumber
from apps.letters import numbering, services
from apps.letters.models import LetterRequest, LetterStatusChoices
from apps.letters.numbering import format_number, parse_number

OFFICE = 'Kel.Sindangrasa'


class TestFormat:

    def test_format_pads_ordinal(self):
        assert format_number(7, 2025) == f'005/007/{OFFICE}/2025'

    def test_format_grows_past_three_digits(self):
        assert format_number(1234, 2025) == f'005/1234/{OFFICE}/2025'

    def test_parse(self):
        assert parse_number(f'005/042/{OFFICE}/2024') == {
            'classification': '005',
            'ordinal': 42,
            'office': OFFICE,
            'year': 2024,
        }

    @pytest.mark.parametrize('value', [None, '', '005/42/2024', 'abc'])
    def test_parse_rejects_malformed(self, value):
        assert parse_number(value) is None


@pytest.mark.django_db
class TestAllocation:

    def _processing(self, make_letter, count):
        return [make_letter(status=LetterStatusChoices.PROCESSING) for _ in range(count)]

    def test_sequential_completions_get_consecutive_numbers(self, clerk, make_letter):
        year = timezone.localtime().year
        letters = self._processing(make_letter, 3)

        numbers = [services.complete_letter(clerk, letter.id).document_number for letter in letters]

        assert numbers == [format_number(n, year) for n in (1, 2, 3)]
        assert len(set(numbers)) == 3

    def test_other_years_do_not_count(self, clerk, make_letter):
        make_letter(status=LetterStatusChoices.COMPLETED, document_number=f'005/009/{OFFICE}/2020')
        letter = make_letter(status=LetterStatusChoices.PROCESSING)

        completed = services.complete_letter(clerk, letter.id)

        assert parse_number(completed.document_number)['ordinal'] == 1

    def test_collision_is_retried(self, clerk, make_letter):
        year = timezone.localtime().year
        first, second = self._processing(make_letter, 2)
        services.complete_letter(clerk, first.id)

        # A stale count makes the first attempt collide with 001
        with patch('apps.letters.numbering.count_numbered_in_year', return_value=0):
            completed = services.complete_letter(clerk, second.id)

        assert completed.document_number == format_number(2, year)
        assert LetterRequest.objects.filter(document_number__endswith=f'/{year}').count() == 2

    def test_race_loser_takes_the_next_ordinal(self, clerk, make_letter):
        year = timezone.localtime().year
        first, second = self._processing(make_letter, 2)
        services.complete_letter(clerk, first.id)
        real_count = numbering.count_numbered_in_year
        calls = []

        def stale_then_fresh(count_year):
            calls.append(count_year)
            return 0 if len(calls) == 1 else real_count(count_year)

        with patch('apps.letters.numbering.count_numbered_in_year', side_effect=stale_then_fresh):
            completed = services.complete_letter(clerk, second.id)

        assert len(calls) == 2
        assert completed.document_number == format_number(2, year)

    def test_exhausted_attempts_raise_duplicate_number(self, settings, clerk, make_letter):
        settings.LETTER_NUMBER_MAX_ATTEMPTS = 1
        first, second = self._processing(make_letter, 2)
        services.complete_letter(clerk, first.id)

        with patch('apps.letters.numbering.count_numbered_in_year', return_value=0):
            with pytest.raises(DuplicateNumber):
                services.complete_letter(clerk, second.id)

        second.refresh_from_db()
        assert second.status == LetterStatusChoices.PROCESSING
        assert second.document_number is None

    def test_exhaustion_over_http_is_conflict(self, settings, clerk, clerk_client, make_letter):
        settings.LETTER_NUMBER_MAX_ATTEMPTS = 2
        first, second, third = self._processing(make_letter, 3)
        services.complete_letter(clerk, first.id)
        services.complete_letter(clerk, second.id)

        with patch('apps.letters.numbering.count_numbered_in_year', return_value=0):
            response = clerk_client.post(f'/api/v1/letters/{third.id}/complete/')

        assert response.status_code == 409
        assert response.json()['error'] == 'duplicate_number'

    def test_number_cannot_be_rewritten(self, completed_letter):
        letter = LetterRequest.objects.get(pk=completed_letter.pk)
        letter.document_number = f'005/999/{OFFICE}/2000'

        with pytest.raises(ValidationError):
            letter.save()
