"""Celery tasks for payouts."""

import structlog
from celery import shared_task

from payments.models import Payout
from payments.exceptions import PaymentProcessorError

logger = structlog.get_logger(__name__)


@shared_task
def process_payout(payout_id: str) -> str:
    """Start the Paystack transfer for a new payout."""
    from payments.service import payout_service

    return str(payout_service.process_payout(payout_id).status)


@shared_task
def sync_processing_payouts() -> int:
    """Verify transfers still PROCESSING with Paystack. Returns how many changed status."""
    from payments.service import payout_service

    changed = 0
    for payout in Payout.objects.in_flight().exclude(reference__isnull=True):
        try:
            if payout_service.sync_payout(payout).status != payout.status:
                changed += 1
        except PaymentProcessorError as e:
            logger.warning("payout_sync_failed", payout_id=str(payout.id), error=e.message)
    if changed:
        logger.info("payouts_synced", count=changed)
    return changed
