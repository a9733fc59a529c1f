from flask import current_app, request

from bookstall import get_store
from bookstall.services import OrderService


def order_service():
    return OrderService(
        get_store(),
        tracking_id_attempts=current_app.config.get('ORDER_TRACKING_ID_ATTEMPTS', 3)
    )


def page_args(default_per_page=None):
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', default_per_page or current_app.config.get('ITEMS_PER_PAGE', 12), type=int)
    return max(page, 1), min(max(per_page, 1), 100)
