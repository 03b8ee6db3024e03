"""Common tasks."""

import typing as t
from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

from common.models import EmailLog, PlatformSettings

logger = structlog.get_logger(__name__)


@shared_task
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email and keep a compressed copy in the EmailLog.

    Args:
        to (str | list[str]): The email address(es).
        subject (str): The email subject.
        body (str): The plain text body.
        html_body (str | None): The HTML body.
    """
    platform_settings = PlatformSettings.get_solo()
    recipients = [to] if isinstance(to, str) else to
    recipients = [to_safe_email_address(email, platform_settings=platform_settings) for email in recipients]
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        bcc=recipients,
    )
    if html_body:  # pragma: no branch
        email_msg.attach_alternative(html_body, "text/html")
    email_msg.send(fail_silently=False)
    email_logs: list[EmailLog] = []
    for recipient in recipients:
        el = EmailLog(to=recipient, subject=subject, test_only=not platform_settings.live_emails)
        el.set_body(body=body)
        if html_body:  # pragma: no branch
            el.set_html(html_body=html_body)
        email_logs.append(el)
    EmailLog.objects.bulk_create(email_logs)
    logger.info("email_sent", subject=subject, recipients=len(recipients))


def send_templated_email(*, to: str | list[str], template: str, context: dict[str, t.Any]) -> None:
    """Render ``<template>_subject.txt``, ``_body.txt`` and ``_body.html`` and queue the email."""
    context = {"frontend_base_url": PlatformSettings.get_solo().frontend_base_url, **context}
    subject = render_to_string(f"{template}_subject.txt", context).strip()
    body = render_to_string(f"{template}_body.txt", context)
    html_body = render_to_string(f"{template}_body.html", context)
    send_email.delay(to=to, subject=subject, body=body, html_body=html_body)


@shared_task
def cleanup_email_logs() -> None:
    """Clean up email logs."""
    older_than_a_week = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=7))
    older_than_a_week.delete()

    # bodies are only kept for a day
    older_than_a_day = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=1))
    older_than_a_day.update(compressed_body=None, compressed_html=None)


def to_safe_email_address(email: str, platform_settings: PlatformSettings | None = None) -> str:
    """Rewrite an address to the internal catch-all unless live emails are enabled.

    ``jane@example.com`` becomes ``catchall+jane_at_example_dot_com@domain``.
    """
    platform_settings = platform_settings or PlatformSettings.get_solo()
    if platform_settings.live_emails:
        return email
    safe_email = email.replace("@", "_at_").replace(".", "_dot_")
    user, domain = platform_settings.internal_catchall_email.split("@", 1)
    return f"{user}+{safe_email}@{domain}"
