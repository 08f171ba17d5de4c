"""
Letter lifecycle services.

Every operation takes the acting user explicitly. Mutations of an existing
letter lock its row (select_for_update) inside transaction.atomic(), re-read
the state, validate, then write; a concurrent loser observes the new state
and fails with InvalidStateTransition.
"""
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework import exceptions

from apps.authz.models import RoleChoices, STAFF_ROLES
from apps.authz.services import authorize
from apps.core.exceptions import Forbidden, InvalidStateTransition
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.observability.events import log_letter_transition
from apps.core.observability.tracing import trace_span
from apps.letters import catalog
from apps.letters.models import LetterAttachment, LetterRequest, LetterStatusChoices
from apps.letters.numbering import allocate_number

logger = get_sanitized_logger(__name__)

APPLICANT_FIELDS = (
    'applicant_name',
    'applicant_national_id',
    'applicant_birth_place',
    'applicant_birth_date',
    'applicant_gender',
    'applicant_religion',
    'applicant_occupation',
    'applicant_marital_status',
    'applicant_nationality',
    'applicant_address',
    'applicant_phone',
    'applicant_email',
)
SIGNER_FIELDS = ('signer_name', 'signer_title', 'signer_employee_number')
EDITABLE_FIELDS = APPLICANT_FIELDS + ('payload', 'notes', 'letter_type', 'category') + SIGNER_FIELDS


def default_signer(user):
    """Signer block for letters authored by `user`, chosen by role."""
    signers = settings.LETTER_SIGNERS
    block = signers.get(user.role) or signers[RoleChoices.ADMIN]
    return {
        'signer_name': block.get('name', ''),
        'signer_title': block.get('title', ''),
        'signer_employee_number': block.get('employee_number', ''),
    }


def _lock(letter_id):
    try:
        return LetterRequest.objects.select_for_update().get(pk=letter_id)
    except (LetterRequest.DoesNotExist, DjangoValidationError, ValueError):
        raise exceptions.NotFound('Letter request not found.')


def ensure_can_view(actor, letter):
    if actor.is_office_staff or letter.created_by_id == actor.id:
        return
    raise Forbidden('You can only view your own letter requests.')


def ensure_can_edit(actor, letter):
    """
    Citizens edit only their own drafts. Office staff edit anything that is
    not completed or rejected.
    """
    if actor.is_office_staff:
        if letter.is_terminal_status:
            raise InvalidStateTransition(f'A {letter.status} letter can no longer be edited.')
        return
    if letter.created_by_id != actor.id:
        raise Forbidden('You can only edit your own letter requests.')
    if letter.status != LetterStatusChoices.DRAFT:
        raise Forbidden('Only drafts can be edited once submitted; contact the office.')


def ensure_can_delete(actor, letter):
    if actor.is_office_staff:
        if letter.status == LetterStatusChoices.COMPLETED:
            raise InvalidStateTransition('A completed letter carries a number and cannot be deleted.')
        return
    if letter.created_by_id != actor.id:
        raise Forbidden('You can only delete your own letter requests.')
    if letter.status != LetterStatusChoices.DRAFT:
        raise Forbidden('Only drafts can be deleted.')


# ============================================================================
# Create / update / delete
# ============================================================================

def create_letter(actor, data):
    """
    Create a draft letter request authored by `actor`.

    `data` holds letter_type, category, applicant_* fields, payload and notes.
    Office staff may also pass a signer block; everyone else gets the
    default signer of their role.
    """
    data = dict(data)
    catalog.check_category(data.get('letter_type'), data.get('category'))
    data['payload'] = catalog.validate_payload(data['letter_type'], data.get('payload'))

    signer = default_signer(actor)
    if actor.is_office_staff:
        for key in SIGNER_FIELDS:
            if data.get(key):
                signer[key] = data[key]
    else:
        if any(data.get(key) for key in SIGNER_FIELDS):
            raise Forbidden('Only office staff may choose the signer.')

    fields = {key: data[key] for key in EDITABLE_FIELDS if key in data and key not in SIGNER_FIELDS}
    fields.update(signer)

    with trace_span('letters.create', attributes={'letter_type': data['letter_type']}):
        letter = LetterRequest(created_by=actor, status=LetterStatusChoices.DRAFT, **fields)
        letter.save()

    metrics.letters_created_total.labels(category=letter.category).inc()
    log_domain_event(
        'letter_created',
        entity_type='LetterRequest',
        entity_id=str(letter.id),
        entity_ids={'actor_id': str(actor.id)},
        letter_type=letter.letter_type,
        category=letter.category,
        on_behalf=letter.applicant_national_id != actor.national_id,
    )
    return letter


@transaction.atomic
def update_letter(actor, letter_id, changes):
    """
    Apply `changes` (subset of EDITABLE_FIELDS) to a letter.

    Never changes the status. Letter type and category may only change on
    drafts; the payload is revalidated whenever it or the type changes.
    """
    letter = _lock(letter_id)
    ensure_can_edit(actor, letter)

    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise exceptions.ValidationError({key: 'This field cannot be edited.' for key in sorted(unknown)})

    if any(key in changes for key in SIGNER_FIELDS) and not actor.is_office_staff:
        raise Forbidden('Only office staff may change the signer.')

    type_changed = (
        changes.get('letter_type', letter.letter_type) != letter.letter_type
        or changes.get('category', letter.category) != letter.category
    )
    if type_changed and letter.status != LetterStatusChoices.DRAFT:
        raise exceptions.ValidationError({'letter_type': 'Letter type and category can only change while draft.'})

    letter_type = changes.get('letter_type', letter.letter_type)
    category = changes.get('category', letter.category)
    if type_changed:
        catalog.check_category(letter_type, category)
    if type_changed or 'payload' in changes:
        changes = dict(changes)
        changes['payload'] = catalog.validate_payload(letter_type, changes.get('payload', letter.payload))

    for key, value in changes.items():
        setattr(letter, key, value)

    with trace_span('letters.update', attributes={'letter_id': str(letter.id)}):
        letter.save()

    log_domain_event(
        'letter_updated',
        entity_type='LetterRequest',
        entity_id=str(letter.id),
        entity_ids={'actor_id': str(actor.id)},
        changed_fields=sorted(changes.keys()),
        status=letter.status,
    )
    return letter


@transaction.atomic
def delete_letter(actor, letter_id):
    letter = _lock(letter_id)
    ensure_can_delete(actor, letter)

    letter_pk = str(letter.id)
    status = letter.status
    letter.delete()

    log_domain_event(
        'letter_deleted',
        entity_type='LetterRequest',
        entity_id=letter_pk,
        entity_ids={'actor_id': str(actor.id)},
        status=status,
    )


# ============================================================================
# Lifecycle transitions
# ============================================================================

def _guard_transition(actor, letter, new_status):
    from_status = letter.status
    if not letter.can_transition_to(new_status):
        metrics.letters_transition_total.labels(
            from_status=from_status, to_status=new_status, result='invalid'
        ).inc()
        log_letter_transition(letter, from_status, new_status, actor=actor, result='blocked')
        raise InvalidStateTransition(
            f'Cannot move a {from_status} letter to {new_status}.'
        )
    return from_status


def _record_transition(actor, letter, from_status):
    metrics.letters_transition_total.labels(
        from_status=from_status, to_status=letter.status, result='success'
    ).inc()
    log_letter_transition(letter, from_status, letter.status, actor=actor)
    logger.info(
        'Letter status changed',
        extra={
            'event': 'letter_status_changed',
            'letter_id': str(letter.id),
            'from_status': from_status,
            'to_status': letter.status,
        }
    )


@transaction.atomic
def submit_letter(actor, letter_id):
    """Author hands a draft to the office."""
    with trace_span('letters.submit', attributes={'letter_id': str(letter_id)}):
        letter = _lock(letter_id)
        if letter.created_by_id != actor.id:
            raise Forbidden('Only the author can submit a letter request.')

        from_status = _guard_transition(actor, letter, LetterStatusChoices.SUBMITTED)
        letter.status = LetterStatusChoices.SUBMITTED
        letter.submitted_at = timezone.now()
        letter.save(update_fields=['status', 'submitted_at', 'updated_at'])

    _record_transition(actor, letter, from_status)
    return letter


@transaction.atomic
def process_letter(actor, letter_id):
    """Office staff takes a submitted letter into processing."""
    authorize(actor, STAFF_ROLES)
    with trace_span('letters.process', attributes={'letter_id': str(letter_id)}):
        letter = _lock(letter_id)
        from_status = _guard_transition(actor, letter, LetterStatusChoices.PROCESSING)
        letter.status = LetterStatusChoices.PROCESSING
        letter.processing_started_at = timezone.now()
        letter.processed_by = actor
        letter.save(update_fields=['status', 'processing_started_at', 'processed_by', 'updated_at'])

    _record_transition(actor, letter, from_status)
    return letter


@transaction.atomic
def complete_letter(actor, letter_id, signer=None):
    """
    Finish a letter in processing: stamp the signer and assign the number.

    `signer` may override signer_name / signer_title / signer_employee_number;
    the resulting signer name must not be blank.
    """
    authorize(actor, STAFF_ROLES)
    with trace_span('letters.complete', attributes={'letter_id': str(letter_id)}):
        letter = _lock(letter_id)
        from_status = _guard_transition(actor, letter, LetterStatusChoices.COMPLETED)

        for key in SIGNER_FIELDS:
            value = (signer or {}).get(key)
            if value is not None:
                setattr(letter, key, value.strip())
        if not letter.signer_name:
            raise exceptions.ValidationError({'signer_name': 'A signer name is required to complete a letter.'})

        now = timezone.now()
        letter.status = LetterStatusChoices.COMPLETED
        letter.completed_at = now
        if letter.processed_by_id is None:
            letter.processed_by = actor

        allocate_number(
            letter,
            year=timezone.localtime(now).year,
            save_fields=['status', 'completed_at', 'processed_by', *SIGNER_FIELDS],
        )

    _record_transition(actor, letter, from_status)
    return letter


@transaction.atomic
def reject_letter(actor, letter_id, reason):
    """Office staff turns down a submitted or processing letter."""
    authorize(actor, STAFF_ROLES)
    reason = (reason or '').strip()
    if not reason:
        raise exceptions.ValidationError({'reason': 'A rejection reason is required.'})

    with trace_span('letters.reject', attributes={'letter_id': str(letter_id)}):
        letter = _lock(letter_id)
        from_status = _guard_transition(actor, letter, LetterStatusChoices.REJECTED)
        letter.status = LetterStatusChoices.REJECTED
        letter.rejected_at = timezone.now()
        letter.rejection_reason = reason
        letter.processed_by = actor
        letter.save(update_fields=['status', 'rejected_at', 'rejection_reason', 'processed_by', 'updated_at'])

    _record_transition(actor, letter, from_status)
    return letter


@transaction.atomic
def toggle_archive(actor, letter_id, value=None):
    """
    Flip (or set, when `value` is given) the archived flag. Status is untouched.
    """
    authorize(actor, (RoleChoices.ADMIN,))
    letter = _lock(letter_id)
    before = letter.is_archived
    letter.is_archived = (not before) if value is None else bool(value)
    letter.save(update_fields=['is_archived', 'updated_at'])

    log_domain_event(
        'letter_archive_toggled',
        entity_type='LetterRequest',
        entity_id=str(letter.id),
        entity_ids={'actor_id': str(actor.id)},
        is_archived_before=before,
        is_archived_after=letter.is_archived,
    )
    return letter


@transaction.atomic
def add_attachment(actor, letter_id, data):
    """Attach file metadata under the same rules as editing the letter."""
    letter = _lock(letter_id)
    ensure_can_edit(actor, letter)

    attachment = LetterAttachment(letter=letter, uploaded_by=actor, **data)
    attachment.full_clean()
    attachment.save()

    log_domain_event(
        'letter_attachment_added',
        entity_type='LetterAttachment',
        entity_id=str(attachment.id),
        entity_ids={'letter_id': str(letter.id), 'actor_id': str(actor.id)},
        mime_type=attachment.mime_type,
        size_bytes=attachment.size_bytes,
    )
    return attachment


def get_letter(actor, letter_id):
    """Read one letter (with attachments) that `actor` is allowed to see."""
    try:
        letter = (
            LetterRequest.objects
            .select_related('created_by', 'processed_by')
            .prefetch_related('attachments')
            .get(pk=letter_id)
        )
    except (LetterRequest.DoesNotExist, DjangoValidationError, ValueError):
        raise exceptions.NotFound('Letter request not found.')
    ensure_can_view(actor, letter)
    return letter
