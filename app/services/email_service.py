"""
Outgoing mail: order confirmations and campaign messages via Flask-Mail.

When SMTP is not configured (no server or username) or sending is
suppressed, messages are logged and skipped and the send counts as
successful, so checkout never fails on mail.
"""
import logging
from flask import current_app, render_template
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    mail.init_app(app)


def _mail_enabled() -> bool:
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def _deliver(to: str, subject: str, html: str, text: str = "") -> bool:
    if not _mail_enabled():
        logger.warning(f"[MAIL DISABLED] '{subject}' to {to} skipped")
        return True
    try:
        mail.send(Message(subject=subject, recipients=[to], body=text, html=html))
    except Exception as e:
        logger.exception(f"[EMAIL] Failed to send '{subject}' to {to}: {e}")
        return False
    logger.info(f"[EMAIL] '{subject}' sent to {to}")
    return True


def send_order_confirmation(order) -> bool:
    """
    Email the customer a summary of a placed order.

    Returns:
        True if sent (or mail disabled), False on failure
    """
    store_name = current_app.config.get('STORE_NAME', 'Lumicea')
    context = {'order': order, 'store_name': store_name}
    return _deliver(
        order.customer_email,
        f"{store_name} order confirmation {order.order_number}",
        render_template('emails/order_confirmation.html', **context),
        render_template('emails/order_confirmation.txt', **context),
    )


def send_email(to: str, subject: str, template: str, text: str | None = None) -> bool:
    """Send one HTML message; ``template`` is the rendered HTML body."""
    return _deliver(to, subject, template, text or "")
