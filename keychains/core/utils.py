"""Audit trail helpers shared by the order views"""
import logging

from .models import AuditLog

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = frozenset(value for value, _ in AuditLog.ACTION_CHOICES)


def get_client_ip(request):
    """First address of X-Forwarded-For, else REMOTE_ADDR"""
    meta = getattr(request, 'META', None)
    if not meta:
        return None
    forwarded = meta.get('HTTP_X_FORWARDED_FOR', '')
    candidate = forwarded.split(',')[0].strip() if forwarded else meta.get('REMOTE_ADDR')
    return candidate or None


def _acting_user(request, user):
    if user is None and request is not None:
        user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    return None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Record one mutation of a group or order.

    The acting user defaults to request.user; anonymous users are stored as NULL.
    Returns the AuditLog row, or None when the entry is incomplete or cannot be
    written. Failures are logged and never reach the caller.
    """
    if action not in AUDIT_ACTIONS:
        logger.warning(f"Audit log skipped: unknown action {action!r} for {model_name} {object_id}")
        return None
    if not model_name or object_id in (None, ''):
        logger.warning(f"Audit log skipped: {action} is missing model_name or object_id")
        return None

    try:
        return AuditLog.objects.create(
            user=_acting_user(request, user),
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        logger.error(f"Failed to write {action} audit log for {model_name} {object_id}: {str(e)}", exc_info=True)
        return None
