"""
Official letter number allocation.

Numbers look like `005/007/Kel.Sindangrasa/2025`: classification code,
zero-padded yearly ordinal, office code, year. The ordinal is the count of
letters already numbered in that year plus one.

The unique constraint on document_number is the source of truth. Two
completions racing for the same ordinal both try to write it; the loser
hits IntegrityError inside its savepoint and retries with a fresh count.
"""
import re
import time

from django.conf import settings
from django.db import IntegrityError, transaction

from apps.core.exceptions import DuplicateNumber
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_number_assigned
from apps.core.observability.tracing import add_span_attribute, trace_span
from apps.letters.models import LetterRequest

logger = get_sanitized_logger(__name__)

NUMBER_PATTERN = re.compile(r'^(?P<classification>[^/]+)/(?P<ordinal>\d{3,})/(?P<office>[^/]+)/(?P<year>\d{4})$')


def format_number(ordinal, year, classification=None, office=None):
    classification = classification or settings.LETTER_CLASSIFICATION_CODE
    office = office or settings.LETTER_OFFICE_CODE
    return f'{classification}/{ordinal:03d}/{office}/{year}'


def parse_number(number):
    """Split a document number into its parts, or None if it is malformed."""
    match = NUMBER_PATTERN.match(number or '')
    if not match:
        return None
    parts = match.groupdict()
    parts['ordinal'] = int(parts['ordinal'])
    parts['year'] = int(parts['year'])
    return parts


def count_numbered_in_year(year):
    return LetterRequest.objects.filter(
        document_number__endswith=f'/{year}',
    ).count()


def allocate_number(letter, year, save_fields):
    """
    Assign the next free number of `year` to `letter` and save it.

    `save_fields` are the other fields written in the same UPDATE (status,
    timestamps, signer). Must run inside the caller's transaction; each
    attempt gets its own savepoint so a collision does not poison it.

    Raises DuplicateNumber after LETTER_NUMBER_MAX_ATTEMPTS collisions.
    """
    if letter.document_number:
        # Assigned once, never changed
        return letter.document_number

    max_attempts = settings.LETTER_NUMBER_MAX_ATTEMPTS
    start = time.time()

    with trace_span('letters.allocate_number', attributes={'letter_id': str(letter.id), 'year': year}):
        last_collided = 0
        for attempt in range(1, max_attempts + 1):
            # A fresh count already includes the winner of a race; a stale one
            # must still move past the ordinal that just collided
            ordinal = max(count_numbered_in_year(year) + 1, last_collided + 1)
            candidate = format_number(ordinal, year)
            letter.document_number = candidate
            try:
                with transaction.atomic():
                    letter.save(
                        skip_validation=True,
                        update_fields=['document_number', 'updated_at', *save_fields],
                    )
            except IntegrityError:
                letter.document_number = None
                last_collided = ordinal
                metrics.letter_number_conflicts_total.labels(outcome='retried').inc()
                logger.warning(
                    'Letter number collision, retrying',
                    extra={
                        'event': 'letter_number_conflict',
                        'letter_id': str(letter.id),
                        'letter_number': candidate,
                        'attempt': attempt,
                    }
                )
                continue

            add_span_attribute('letter.number_attempts', attempt)
            metrics.letter_numbers_assigned_total.inc()
            metrics.letter_number_allocation_duration_seconds.observe(time.time() - start)
            log_number_assigned(letter, attempts=attempt)
            return candidate

    metrics.letter_number_conflicts_total.labels(outcome='exhausted').inc()
    logger.error(
        'Letter number allocation exhausted',
        extra={'event': 'letter_number_exhausted', 'letter_id': str(letter.id), 'attempts': max_attempts}
    )
    raise DuplicateNumber()
