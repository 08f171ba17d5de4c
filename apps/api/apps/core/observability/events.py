"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'letter_transition')
        entity_type: Type of entity (e.g., 'LetterRequest')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, etc.)
        **extra_fields: Additional fields to log (will be sanitized)
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'rejected']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_letter_transition(letter, from_status, to_status, actor=None, result='success', **extra):
    """Log letter status transition event."""
    entity_ids = {'letter_id': str(letter.id)}
    if actor is not None:
        entity_ids['actor_id'] = str(actor.id)

    log_domain_event(
        'letter_transition',
        entity_type='LetterRequest',
        entity_id=str(letter.id),
        entity_ids=entity_ids,
        result=result,
        from_status=from_status,
        to_status=to_status,
        **extra
    )


def log_number_assigned(letter, attempts):
    """Log official number assignment. The number itself is not PII."""
    log_domain_event(
        'letter_number_assigned',
        entity_type='LetterRequest',
        entity_id=str(letter.id),
        entity_ids={'letter_id': str(letter.id)},
        letter_number=letter.document_number,
        attempts=attempts,
    )


def log_registration(user, result='success', **extra):
    """Log a self-service registration."""
    log_domain_event(
        'user_registered',
        entity_type='User',
        entity_id=str(user.id) if user is not None else None,
        result=result,
        **extra
    )
