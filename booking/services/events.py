import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

CASES_GROUP = "cases"


def broadcast_case_event(case, event: str, **extra) -> bool:
    """Push a ``case.updated`` message to every connected client.

    Returns False when no channel layer is configured or the send fails.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    payload = {
        "type": "case.updated",
        "event": event,
        "caseId": case.id,
        "caseReferenceNumber": case.case_reference_number,
        "status": case.status,
        "country": case.country,
        "ts": timezone.now().isoformat(),
    }
    payload.update(extra)
    try:
        async_to_sync(channel_layer.group_send)(CASES_GROUP, payload)
    except Exception:
        logger.warning("Case event broadcast failed", exc_info=True, extra={"case_id": case.id, "event": event})
        return False
    return True
