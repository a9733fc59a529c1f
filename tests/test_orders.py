import re
from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from bookstall.errors import (
    AuthorizationError, BookUnavailableError, ConflictError, EmptyCartError,
    InsufficientStockError, InvalidStatusTransitionError, NotFoundError
)
from bookstall.models import Book, Order
from bookstall.schemas import PlaceOrder, UpdateOrderStatus
from bookstall.services import OrderService

from factories import ADDRESS, make_book, make_order, make_user, put_in_cart

T0 = datetime(2024, 3, 1, 12, 0, 0)


class Clock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


def checkout_command(payment_method='COD'):
    return PlaceOrder.model_validate({'shipping_address': ADDRESS, 'payment_method': payment_method})


def status(value, reason=None):
    return UpdateOrderStatus.model_validate({'status': value, 'reason': reason})


class TestPlaceOrder:

    def test_last_copies_sold_then_next_buyer_is_refused(self, store, seller, customer):
        book = make_book(store, seller, price=100.0, stock=2)
        put_in_cart(store, customer, book, quantity=2)
        service = OrderService(store)

        order = service.place_order(customer, checkout_command())

        assert order.total_price == 200.0
        assert order.status == 'ordered'
        assert order.payment_status == 'Pending'
        assert store.books.get_by_id(book.id).stock_quantity == 0
        assert store.carts.items_for(customer.id) == []

        second = make_user(store, role='customer')
        put_in_cart(store, second, book, quantity=1)
        with pytest.raises(InsufficientStockError) as exc:
            service.place_order(second, checkout_command())
        assert exc.value.book_id == book.id
        assert exc.value.shortfall == 1
        assert store.orders.count() == 1

    def test_total_is_sum_of_price_snapshots(self, store, seller, customer):
        first = make_book(store, seller, price=12.5, stock=5)
        second = make_book(store, seller, price=7.25, stock=5)
        put_in_cart(store, customer, first, quantity=2)
        put_in_cart(store, customer, second, quantity=3)

        order = OrderService(store).place_order(customer, checkout_command('UPI'))

        assert order.total_price == pytest.approx(12.5 * 2 + 7.25 * 3)
        assert order.payment_method == 'UPI'
        assert {(line.book_id, line.quantity, line.price) for line in order.items} == {
            (first.id, 2, 12.5), (second.id, 3, 7.25)
        }
        assert store.books.get_by_id(first.id).stock_quantity == 3
        assert store.books.get_by_id(second.id).stock_quantity == 2

    def test_lines_keep_their_price_after_book_changes(self, store, seller, customer):
        book = make_book(store, seller, price=50.0, stock=5, title='Dune')
        put_in_cart(store, customer, book)
        order = OrderService(store).place_order(customer, checkout_command())

        book.price = 80.0
        book.title = 'Dune (Deluxe)'
        store.session.commit()

        line = store.orders.get_by_id(order.id).items[0]
        assert line.price == 50.0
        assert line.title == 'Dune'
        assert line.seller_id == seller.id

    def test_tracking_id_format(self, store, seller, customer):
        put_in_cart(store, customer, make_book(store, seller))
        order = OrderService(store).place_order(customer, checkout_command())
        assert re.fullmatch(r'ORD-\d{14}-[A-Z0-9]{5}', order.tracking_id)

    def test_shipping_address_is_stored(self, store, seller, customer):
        put_in_cart(store, customer, make_book(store, seller))
        order = OrderService(store).place_order(customer, checkout_command())
        assert order.shipping_address['city'] == 'Bengaluru'
        assert order.shipping_address['country'] == 'India'

    def test_empty_cart(self, store, customer):
        with pytest.raises(EmptyCartError):
            OrderService(store).place_order(customer, checkout_command())

    def test_one_short_line_blocks_the_whole_order(self, store, seller, customer):
        plenty = make_book(store, seller, stock=10)
        scarce = make_book(store, seller, stock=1)
        put_in_cart(store, customer, plenty, quantity=3)
        put_in_cart(store, customer, scarce, quantity=2)

        with pytest.raises(InsufficientStockError) as exc:
            OrderService(store).place_order(customer, checkout_command())

        assert exc.value.book_id == scarce.id
        assert exc.value.to_dict()['shortfall'] == 1
        assert store.orders.count() == 0
        assert store.books.get_by_id(plenty.id).stock_quantity == 10
        assert store.books.get_by_id(scarce.id).stock_quantity == 1
        assert len(store.carts.items_for(customer.id)) == 2

    def test_inactive_book_blocks_the_whole_order(self, store, seller, customer):
        active = make_book(store, seller, stock=10)
        retired = make_book(store, seller, stock=10, is_active=False)
        put_in_cart(store, customer, active, quantity=1)
        put_in_cart(store, customer, retired, quantity=1)

        with pytest.raises(BookUnavailableError) as exc:
            OrderService(store).place_order(customer, checkout_command())

        assert exc.value.book_id == retired.id
        assert store.orders.count() == 0
        assert store.books.get_by_id(active.id).stock_quantity == 10
        assert len(store.carts.items_for(customer.id)) == 2

    def test_stock_check_uses_current_stock(self, store, seller, customer):
        book = make_book(store, seller, stock=5)
        put_in_cart(store, customer, book, quantity=4)
        book.stock_quantity = 3
        store.session.commit()

        with pytest.raises(InsufficientStockError):
            OrderService(store).place_order(customer, checkout_command())

    def test_lost_race_rolls_back_everything(self, store, seller, customer):
        first = make_book(store, seller, stock=5)
        second = make_book(store, seller, stock=5)
        put_in_cart(store, customer, first, quantity=2)
        put_in_cart(store, customer, second, quantity=2)

        def tracking_ids():
            # Another checkout drains the second book after validation passed
            store.session.execute(update(Book).where(Book.id == second.id).values(stock_quantity=1))
            return 'ORD-20240301120000-RACE1'

        with pytest.raises(InsufficientStockError) as exc:
            OrderService(store, tracking_ids=tracking_ids).place_order(customer, checkout_command())

        assert exc.value.book_id == second.id
        assert exc.value.available == 1
        assert store.orders.count() == 0
        assert store.books.get_by_id(first.id).stock_quantity == 5
        assert len(store.carts.items_for(customer.id)) == 2

    def test_book_retired_during_checkout_rolls_back_everything(self, store, seller, customer):
        first = make_book(store, seller, stock=5)
        second = make_book(store, seller, stock=5, title='Withdrawn')
        put_in_cart(store, customer, first, quantity=2)
        put_in_cart(store, customer, second, quantity=1)

        def tracking_ids():
            # The seller deactivates the second book after validation passed
            store.session.execute(update(Book).where(Book.id == second.id).values(is_active=False))
            return 'ORD-20240301120000-RACE2'

        with pytest.raises(BookUnavailableError) as exc:
            OrderService(store, tracking_ids=tracking_ids).place_order(customer, checkout_command())

        assert exc.value.book_id == second.id
        assert 'Withdrawn' in exc.value.message
        assert store.orders.count() == 0
        assert store.books.get_by_id(first.id).stock_quantity == 5
        assert store.books.get_by_id(second.id).is_active is True
        assert len(store.carts.items_for(customer.id)) == 2

    def test_taken_tracking_id_is_regenerated(self, store, seller, customer):
        book = make_book(store, seller, stock=5)
        taken = make_order(store, customer, book).tracking_id
        ids = iter([taken, 'ORD-20240301120000-FRESH'])
        put_in_cart(store, customer, book)

        order = OrderService(store, tracking_ids=lambda: next(ids)).place_order(customer, checkout_command())

        assert order.tracking_id == 'ORD-20240301120000-FRESH'

    def test_tracking_id_exhaustion_is_retryable(self, store, seller, customer):
        book = make_book(store, seller, stock=5)
        taken = make_order(store, customer, book).tracking_id
        put_in_cart(store, customer, book, quantity=2)

        service = OrderService(store, tracking_ids=lambda: taken, tracking_id_attempts=2)
        with pytest.raises(ConflictError) as exc:
            service.place_order(customer, checkout_command())

        assert exc.value.retryable is True
        assert store.orders.count() == 1
        assert store.books.get_by_id(book.id).stock_quantity == 5
        assert len(store.carts.items_for(customer.id)) == 1


class TestUpdateStatus:

    @pytest.fixture
    def order(self, store, seller, customer):
        return make_order(store, customer, make_book(store, seller))

    def test_confirming_sets_expected_delivery_once(self, store, seller, order):
        clock = Clock()
        service = OrderService(store, clock=clock)

        service.update_status(order.id, seller, status('confirmed'))
        assert order.expected_delivery == T0 + timedelta(days=7)

        clock.now = T0 + timedelta(days=2)
        service.update_status(order.id, seller, status('confirmed'))
        service.update_status(order.id, seller, status('packing'))
        assert order.expected_delivery == T0 + timedelta(days=7)

    def test_delivering_sets_delivered_at_once(self, store, admin, order):
        clock = Clock()
        service = OrderService(store, clock=clock)

        service.update_status(order.id, admin, status('delivered'))
        assert order.status == 'delivered'
        assert order.delivered_at == T0

        clock.now = T0 + timedelta(hours=5)
        service.update_status(order.id, admin, status('delivered'))
        assert order.delivered_at == T0

    def test_forward_skip_is_allowed(self, store, seller, order):
        OrderService(store).update_status(order.id, seller, status('shipped'))
        assert store.orders.get_by_id(order.id).status == 'shipped'

    def test_backward_move_is_rejected(self, store, seller, order):
        service = OrderService(store)
        service.update_status(order.id, seller, status('shipped'))
        with pytest.raises(InvalidStatusTransitionError) as exc:
            service.update_status(order.id, seller, status('packing'))
        assert exc.value.details == {'current_status': 'shipped', 'requested_status': 'packing'}

    @pytest.mark.parametrize('terminal', ['delivered', 'cancelled'])
    def test_terminal_states_are_final(self, store, admin, order, terminal):
        service = OrderService(store)
        service.update_status(order.id, admin, status(terminal))
        with pytest.raises(InvalidStatusTransitionError):
            service.update_status(order.id, admin, status('shipped'))
        assert order.status == terminal

    def test_cancellation_records_time_and_reason(self, store, seller, order):
        OrderService(store, clock=Clock()).update_status(
            order.id, seller, status('cancelled', reason='Customer changed their mind')
        )
        assert order.status == 'cancelled'
        assert order.cancelled_at == T0
        assert order.cancellation_reason == 'Customer changed their mind'

    def test_seller_without_a_line_is_refused_admin_is_not(self, store, admin, order):
        outsider = make_user(store, role='seller')
        service = OrderService(store)

        with pytest.raises(AuthorizationError):
            service.update_status(order.id, outsider, status('confirmed'))
        assert order.status == 'ordered'

        service.update_status(order.id, admin, status('confirmed'))
        assert order.status == 'confirmed'

    def test_owner_cannot_move_own_order(self, store, customer, order):
        with pytest.raises(AuthorizationError):
            OrderService(store).update_status(order.id, customer, status('cancelled'))

    def test_unapproved_seller_is_refused(self, store, order):
        pending = make_user(store, role='seller', approved=False)
        order.items[0].seller_id = pending.id
        store.session.commit()
        with pytest.raises(AuthorizationError):
            OrderService(store).update_status(order.id, pending, status('confirmed'))

    def test_unknown_order(self, store, admin):
        with pytest.raises(NotFoundError):
            OrderService(store).update_status(999, admin, status('confirmed'))


class TestOrderReads:

    def test_viewers(self, store, seller, customer, admin):
        order = make_order(store, customer, make_book(store, seller))
        service = OrderService(store)

        assert service.get_order_for(order.id, customer) is order
        assert service.get_order_for(order.id, seller) is order
        assert service.get_order_for(order.id, admin) is order
        with pytest.raises(AuthorizationError):
            service.get_order_for(order.id, make_user(store, role='customer'))

    def test_seller_sees_orders_with_own_books(self, store, seller, customer):
        other = make_user(store, role='seller')
        mine = make_order(store, customer, make_book(store, seller, price=20.0), quantity=2)
        make_order(store, customer, make_book(store, other))
        service = OrderService(store)

        page = service.orders_for_seller(seller)
        assert [o.id for o in page.items] == [mine.id]
        assert service.seller_summary(seller) == {'total_orders': 1, 'total_sales': 40.0}

    def test_status_filter(self, store, seller, customer):
        book = make_book(store, seller)
        make_order(store, customer, book, status='shipped')
        make_order(store, customer, book)
        page = OrderService(store).all_orders(status='shipped')
        assert page.total == 1
        assert page.items[0].status == 'shipped'

    def test_customer_history(self, store, seller, customer):
        book = make_book(store, seller)
        make_order(store, customer, book)
        make_order(store, make_user(store), book)
        page = OrderService(store).orders_for_user(customer)
        assert page.total == 1
        assert isinstance(page.items[0], Order)
