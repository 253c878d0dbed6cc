"""Helper for writing :class:`~backoffice.models.ActivityLog` rows."""

import logging

from .models import ActivityLog

logger = logging.getLogger(__name__)


def _client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


def record(action, *, user=None, entity=None, entity_type='', entity_id='', details=None, request=None):
    """Store one audit row.

    ``entity`` may be a model instance; its model name and primary key fill
    ``entity_type`` / ``entity_id`` unless those are passed explicitly.
    """
    if entity is not None:
        entity_type = entity_type or entity._meta.model_name
        entity_id = entity_id or str(entity.pk)

    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None

    ip_address = None
    user_agent = ''
    if request is not None:
        ip_address = _client_ip(request)
        user_agent = (request.META.get('HTTP_USER_AGENT') or '')[:255]

    log = ActivityLog.objects.create(
        user=user,
        action=action,
        entity_type=entity_type or '',
        entity_id=str(entity_id or ''),
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    logger.debug('activity %s %s:%s', action, log.entity_type, log.entity_id)
    return log
