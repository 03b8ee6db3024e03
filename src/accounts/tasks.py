"""Tasks for the accounts app."""

import structlog
from celery import shared_task
from django.conf import settings

from common.tasks import send_templated_email

logger = structlog.get_logger(__name__)


@shared_task
def send_verification_email(email: str, code: str, name: str = "") -> None:
    """Send the six digit verification code."""
    logger.info("verification_email_sending", email=email)
    send_templated_email(
        to=email,
        template="accounts/emails/email_verification",
        context={
            "code": code,
            "name": name,
            "lifetime_minutes": settings.EMAIL_VERIFICATION_CODE_LIFETIME_MINUTES,
        },
    )
