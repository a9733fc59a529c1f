"""Order placement and the fulfillment state machine.

Placement is split in two phases. The validation pass reads the cart and
the live books and fails fast without writing anything. The commit phase
runs in a single store transaction: insert the order, reserve stock with a
conditional decrement per line, empty the cart. If any step of the commit
phase fails the transaction is rolled back, so an order never exists
without its stock and stock is never taken without an order.
"""
from datetime import datetime, timedelta
import logging

from bookstall.errors import (
    AuthorizationError, BookUnavailableError, ConflictError, EmptyCartError,
    InsufficientStockError, InvalidStatusTransitionError, NotFoundError
)
from bookstall.models import Order, OrderItem
from bookstall.models.order import CANCELLED, EXPECTED_DELIVERY_DAYS, ORDER_STATUSES

logger = logging.getLogger(__name__)


class OrderService:

    def __init__(self, store, clock=datetime.utcnow, tracking_ids=Order.generate_tracking_id,
                 tracking_id_attempts=3):
        self.store = store
        self.clock = clock
        self.tracking_ids = tracking_ids
        self.tracking_id_attempts = tracking_id_attempts

    # Placement

    def place_order(self, user, command):
        """Turn ``user``'s cart into an order, or fail without touching anything."""
        with self.store.reading():
            cart_items = self.store.carts.items_for(user.id)
            if not cart_items:
                raise EmptyCartError()
            lines = self._validate_cart(cart_items)

        order = Order(
            user_id=user.id,
            status='ordered',
            payment_method=command.payment_method,
            payment_status='Pending',
            shipping_address=command.shipping_address.model_dump()
        )
        order.items = [OrderItem.snapshot(book, item.quantity) for item, book in lines]
        order.total_price = order.calculate_total()

        retry = ConflictError('Order could not be created, please retry.', retryable=True)
        with self.store.transaction(conflict=retry):
            order.tracking_id = self._allocate_tracking_id()
            self.store.orders.save(order)
            for line in order.items:
                self._reserve(line)
            self.store.carts.clear(user.id)

        logger.info('Order %s placed by user %s: %d line(s), total %.2f',
                    order.tracking_id, user.id, len(order.items), order.total_price)
        return order

    def _validate_cart(self, cart_items):
        books = {}
        for item in cart_items:
            book = self.store.books.get_by_id(item.book_id)
            if book is None or not book.is_active:
                raise BookUnavailableError(item.book_id, book.title if book else None)
            books[item.id] = book

        # Stock is checked now, not when the item went into the cart
        for item in cart_items:
            book = books[item.id]
            if book.stock_quantity < item.quantity:
                raise InsufficientStockError(book.id, item.quantity, book.stock_quantity, title=book.title)

        return [(item, books[item.id]) for item in cart_items]

    def _allocate_tracking_id(self):
        for _ in range(self.tracking_id_attempts):
            tracking_id = self.tracking_ids()
            if not self.store.orders.tracking_id_exists(tracking_id):
                return tracking_id
            logger.warning('Tracking id %s already taken, generating another', tracking_id)
        raise ConflictError('Could not allocate a tracking id, please retry.', retryable=True)

    def _reserve(self, line):
        if self.store.books.reserve_stock(line.book_id, line.quantity):
            return
        # Lost a race against another checkout or a seller edit
        book = self.store.books.get_by_id(line.book_id)
        if book is None or not book.is_active:
            raise BookUnavailableError(line.book_id, line.title)
        raise InsufficientStockError(line.book_id, line.quantity, book.stock_quantity, title=line.title)

    # Fulfillment

    def update_status(self, order_id, actor, command):
        order = self.get_order(order_id)
        if not self.can_manage(order, actor):
            raise AuthorizationError('Not authorized to update this order.')

        target = command.status
        if target == order.status:
            return order
        if order.is_terminal():
            raise InvalidStatusTransitionError(order.status, target)
        if target != CANCELLED and ORDER_STATUSES.index(target) < ORDER_STATUSES.index(order.status):
            raise InvalidStatusTransitionError(order.status, target)

        now = self.clock()
        previous = order.status
        with self.store.transaction():
            order.status = target
            if target == 'confirmed' and order.expected_delivery is None:
                order.expected_delivery = now + timedelta(days=EXPECTED_DELIVERY_DAYS)
            if target == 'delivered' and order.delivered_at is None:
                order.delivered_at = now
            if target == CANCELLED:
                order.cancelled_at = now
                order.cancellation_reason = command.reason

        logger.info('Order %s moved from %s to %s by %s %s',
                    order.tracking_id, previous, target, actor.role, actor.id)
        return order

    @staticmethod
    def can_manage(order, actor):
        """Admins, and approved sellers owning at least one line, may move an order"""
        if actor.is_admin():
            return True
        return actor.is_approved_seller() and actor.id in order.seller_ids()

    # Reads

    def get_order(self, order_id):
        with self.store.reading():
            order = self.store.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError('Order not found.', order_id=order_id)
        return order

    def get_order_for(self, order_id, viewer):
        order = self.get_order(order_id)
        if order.user_id != viewer.id and not self.can_manage(order, viewer):
            raise AuthorizationError('Not authorized to view this order.')
        return order

    def orders_for_user(self, user, page=1, per_page=10):
        with self.store.reading():
            return self.store.orders.for_user(user.id, page=page, per_page=per_page)

    def orders_for_seller(self, seller, status=None, page=1, per_page=10):
        with self.store.reading():
            return self.store.orders.for_seller(seller.id, status=status, page=page, per_page=per_page)

    def all_orders(self, status=None, page=1, per_page=20):
        with self.store.reading():
            return self.store.orders.search(status=status, page=page, per_page=per_page)

    def seller_summary(self, seller):
        with self.store.reading():
            total_orders, total_sales = self.store.orders.seller_sales(seller.id)
        return {'total_orders': total_orders, 'total_sales': total_sales}
