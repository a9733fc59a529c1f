from bookstall.utils.decorators import role_required, admin_required, seller_required, customer_required
from bookstall.utils.email import send_email, send_order_confirmation, send_order_status_update, send_seller_approval_notification, send_welcome_email
from bookstall.utils.repositories import Page, Store

__all__ = [
    'role_required',
    'admin_required',
    'seller_required',
    'customer_required',
    'send_email',
    'send_order_confirmation',
    'send_order_status_update',
    'send_seller_approval_notification',
    'send_welcome_email',
    'Page',
    'Store'
]
