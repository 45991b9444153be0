"""
Email campaign rendering and delivery.

Campaign content is HTML with ``{{variable}}`` placeholders. Supported
variables: first_name, last_name, email, order_number, total_spent,
current_date.
"""
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func

from app.models import CampaignStatus, EmailCampaign, Order, PaymentStatus, UserProfile, UserRole
from app.exceptions import BusinessLogicError
from app.services.email_service import send_email
from app.utils.formatters import money_gbp

logger = logging.getLogger(__name__)

TEMPLATE_VARIABLES = ('first_name', 'last_name', 'email', 'order_number', 'total_spent', 'current_date')
TEST_SUBJECT_PREFIX = '[TEST] '

_PLACEHOLDER = re.compile(r'\{\{\s*(\w+)\s*\}\}')


def _today() -> str:
    return datetime.now(timezone.utc).strftime('%d/%m/%Y')


def sample_values() -> dict:
    return {
        'first_name': 'John',
        'last_name': 'Doe',
        'email': 'john.doe@example.com',
        'order_number': 'LUM-12345',
        'total_spent': '£250.00',
        'current_date': _today(),
    }


def render(content: str, values: dict, unknown: str = '[Variable]') -> str:
    """Substitute placeholders; anything not in ``values`` becomes ``unknown``."""
    return _PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), unknown)), content or '')


def render_preview(content: str) -> str:
    """Render with sample customer values for the admin preview."""
    return render(content, sample_values())


def customer_values(session, customer: UserProfile) -> dict:
    """Template values for one customer, from their paid orders."""
    latest = (
        session.query(Order.order_number)
        .filter(Order.user_id == customer.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .first()
    )
    spent = (
        session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.user_id == customer.id, Order.payment_status == PaymentStatus.PAID.value)
        .scalar()
    )
    return {
        'first_name': customer.first_name,
        'last_name': customer.last_name,
        'email': customer.email,
        'order_number': latest[0] if latest else '',
        'total_spent': money_gbp(Decimal(str(spent or 0))),
        'current_date': _today(),
    }


def send_test(campaign: EmailCampaign, to_email: str) -> bool:
    """Send the sample-rendered campaign to one address with a [TEST] subject."""
    html = render_preview(campaign.content)
    logger.info(f"[CAMPAIGN] Sending test of '{campaign.name}' to {to_email}")
    return send_email(to_email, f"{TEST_SUBJECT_PREFIX}{campaign.subject}", html)


def recipients(session) -> list:
    """Active customers who accept marketing email."""
    return (
        session.query(UserProfile)
        .filter(
            UserProfile.role == UserRole.CUSTOMER.value,
            UserProfile.active.is_(True),
            UserProfile.marketing_opt_in.is_(True),
        )
        .order_by(UserProfile.id)
        .all()
    )


def send_campaign(session, campaign_id: int) -> EmailCampaign:
    """
    Personalise and send a campaign to every recipient, then mark it sent.

    Raises:
        BusinessLogicError: if the campaign was already sent or cancelled
    """
    campaign = session.get(EmailCampaign, campaign_id)
    if not campaign:
        raise BusinessLogicError('Campaign not found', status_code=404)
    if campaign.status in (CampaignStatus.SENT.value, CampaignStatus.CANCELLED.value):
        raise BusinessLogicError(f'Campaign is already {campaign.status}')

    campaign.status = CampaignStatus.SENDING.value
    session.commit()

    delivered = 0
    for customer in recipients(session):
        values = customer_values(session, customer)
        html = render(campaign.content, values, unknown='')
        subject = render(campaign.subject, values, unknown='')
        if send_email(customer.email, subject, html):
            delivered += 1
        else:
            logger.warning(f"[CAMPAIGN] Delivery to {customer.email} failed")

    campaign.recipients_count = delivered
    campaign.sent_at = datetime.now(timezone.utc)
    campaign.status = CampaignStatus.SENT.value
    session.commit()
    logger.info(f"[CAMPAIGN] '{campaign.name}' sent to {delivered} recipients")
    return campaign
