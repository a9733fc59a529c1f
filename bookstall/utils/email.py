"""Customer-facing notifications.

Mail goes out through Flask-Mail; when that fails and AWS is enabled the
same text is published on the SNS topic instead. A failed notification is
logged and never undoes the operation that triggered it.
"""
from flask_mail import Message
from bookstall import mail
from flask import current_app
import logging
from smtplib import SMTPException
from .aws_services import send_sns_notification

logger = logging.getLogger(__name__)


def send_email(to, subject, body, html=None):
    """Send email notification"""
    try:
        msg = Message(
            subject=subject,
            recipients=[to] if isinstance(to, str) else to,
            body=body,
            html=html
        )
        mail.send(msg)
        return True
    except (SMTPException, OSError) as e:
        logger.warning('Mail delivery to %s failed: %s', to, e)
        if current_app.config.get('USE_AWS'):
            if send_sns_notification(subject, f"To: {to}\n\n{body}"):
                return True

        logger.info('Email would be sent to %s: %s', to, subject)
        logger.debug('Body: %s', body)
        return False


def send_order_confirmation(order):
    """Send order confirmation email"""
    subject = f"Order Confirmation - {order.tracking_id}"
    address = order.shipping_address
    body = f"""
Dear {order.customer.username},

Thank you for your order!

Tracking ID: {order.tracking_id}
Order Date: {order.created_at.strftime('%Y-%m-%d %H:%M')}
Payment Method: {order.payment_method}
Total Amount: ${order.total_price:.2f}

Order Items:
"""
    for item in order.items:
        body += f"  - {item.title} x {item.quantity} = ${item.get_subtotal():.2f}\n"

    body += f"""
Shipping To: {address['name']}, {address['street']}, {address['city']}, {address['state']} {address['zip_code']}, {address['country']}

We will notify you as your order moves along.

Thank you for shopping with Bookstall!
"""

    sent = send_email(order.customer.email, subject, body)
    logger.info('Order confirmation for %s %s', order.tracking_id, 'sent' if sent else 'not sent')
    return sent


def send_order_status_update(order):
    """Send order status update email"""
    subject = f"Order Status Update - {order.tracking_id}"
    body = f"""
Dear {order.customer.username},

Your order status has been updated.

Tracking ID: {order.tracking_id}
New Status: {order.status.upper()}
"""
    if order.status == 'confirmed' and order.expected_delivery:
        body += f"Expected Delivery: {order.expected_delivery.strftime('%Y-%m-%d')}\n"
    if order.status == 'cancelled' and order.cancellation_reason:
        body += f"Reason: {order.cancellation_reason}\n"

    body += """
Thank you for shopping with Bookstall!
"""

    sent = send_email(order.customer.email, subject, body)
    logger.info('Status update for %s %s', order.tracking_id, 'sent' if sent else 'not sent')
    return sent


def send_seller_approval_notification(user, approved=True):
    """Send seller approval/rejection notification"""
    if approved:
        subject = "Seller Account Approved - Bookstall"
        body = f"""
Dear {user.username},

Congratulations! Your seller account has been approved.

You can now start listing your books on Bookstall.

Welcome to Bookstall!
"""
    else:
        subject = "Seller Account Application - Bookstall"
        body = f"""
Dear {user.username},

Thank you for your interest in becoming a seller on Bookstall.

Unfortunately, we are unable to approve your seller account at this time.
Your account remains active as a customer account.

Thank you,
Bookstall Team
"""

    sent = send_email(user.email, subject, body)
    logger.info('Seller %s notice to %s %s', 'approval' if approved else 'rejection',
                user.email, 'sent' if sent else 'not sent')
    return sent


def send_welcome_email(user):
    """Send welcome email to new user"""
    subject = "Welcome to Bookstall!"
    body = f"""
Dear {user.username},

Welcome to Bookstall - your online destination for books!

Your account has been successfully created.

{'Your seller account is pending approval. We will notify you once approved.' if user.role == 'seller' else 'Start browsing our collection and find your next great read!'}

Happy Reading!
Bookstall Team
"""

    sent = send_email(user.email, subject, body)
    logger.info('Welcome email to %s %s', user.email, 'sent' if sent else 'not sent')
    return sent
