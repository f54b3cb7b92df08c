"""
Email notifications for deliverable updates.

Sent over SMTP with STARTTLS using the Gmail app-password credentials.
"""

import logging
import smtplib
from email.mime.text import MIMEText

from . import config
from . import schema
from . import properties

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = """A Designer Deliverable has been updated:

----------------------------------------

DELIVERABLE: {deliverable}
GATE: {gate}
STATUS: {status}
REVIEW STATUS: {review_status}
SUBMITTED BY: {submitted_by}
TARGET DUE: {target_due}

COMMENTS:
{comments}

----------------------------------------

View in Notion: {url}

---
JOOBIN RENOVATION COMMAND CENTER
Automated notification from Designer Deliverables database
"""


def build_deliverable_email(record):
    """
    Format the notification for a deliverable page.

    Returns:
        (subject, body)
    """
    page_id = record.get('id', '')
    deliverable = properties.text(record, 'Select Deliverable:') or 'Untitled'

    body = EMAIL_TEMPLATE.format(
        deliverable=deliverable,
        gate=', '.join(properties.names(record, 'Gate')) or 'N/A',
        status=schema.text(record, 'deliverable', 'status') or 'N/A',
        review_status=schema.text(record, 'deliverable', 'review_status') or 'N/A',
        submitted_by=', '.join(schema.names(record, 'deliverable', 'submitted_by')) or 'N/A',
        target_due=schema.field(record, 'deliverable', 'due_date') or 'Not set',
        comments=schema.text(record, 'deliverable', 'comments') or 'None',
        url=record.get('url') or f"https://notion.so/{page_id.replace('-', '')}",
    )
    return f"Designer Deliverable Updated: {deliverable}", body


def send_email(subject, body, recipients=None):
    """
    Send a plain-text email to the notification recipients.

    Raises:
        ConfigurationError: credentials or recipients are not configured.
        smtplib.SMTPException: delivery failed.
    """
    recipients = recipients or config.NOTIFY_RECIPIENTS
    if not config.GMAIL_USER or not config.GMAIL_APP_PASSWORD:
        raise config.ConfigurationError('GMAIL_USER / GMAIL_APP_PASSWORD are not configured.')
    if not recipients:
        raise config.ConfigurationError('NOTIFY_RECIPIENTS is not configured.')

    msg = MIMEText(body, 'plain', 'utf-8')
    msg['Subject'] = subject
    msg['From'] = config.GMAIL_USER
    msg['To'] = ', '.join(recipients)

    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(config.GMAIL_USER, config.GMAIL_APP_PASSWORD)
        server.sendmail(config.GMAIL_USER, recipients, msg.as_string())

    logger.info(f"Email sent: '{subject}' to {len(recipients)} recipients")
    return len(recipients)
