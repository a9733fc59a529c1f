"""Repositories over a single SQLAlchemy session, grouped behind :class:`Store`.

Services are handed a ``Store`` when they are built and never reach for a
global session, so the same code runs against the request session in the
app and against a test session in the test suite.
"""
from contextlib import contextmanager
import logging

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from bookstall.errors import ConflictError, TransientStoreError
from bookstall.models import Book, CartItem, Order, OrderItem, Review, User, WishlistItem

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)


class Page:
    """One page of results plus the numbers a client needs to page through them"""
    def __init__(self, items, page, per_page, total):
        self.items = items
        self.page = page
        self.per_page = per_page
        self.total = total
        self.pages = (total + per_page - 1) // per_page
        self.has_prev = page > 1
        self.has_next = page < self.pages

    def to_dict(self, key='items'):
        return {
            key: [item.to_dict() for item in self.items],
            'page': self.page,
            'per_page': self.per_page,
            'total': self.total,
            'pages': self.pages,
            'has_prev': self.has_prev,
            'has_next': self.has_next
        }


class SQLRepository:
    model = None

    def __init__(self, session):
        self.session = session

    def get_by_id(self, item_id):
        return self.session.get(self.model, item_id)

    def save(self, item):
        self.session.add(item)
        self.session.flush()
        return item

    def delete(self, item):
        self.session.delete(item)
        self.session.flush()
        return True

    def count(self, *criteria):
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return self.session.scalar(stmt)

    def paginate(self, stmt, page, per_page):
        page = max(page, 1)
        total = self.session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
        items = self.session.scalars(stmt.limit(per_page).offset((page - 1) * per_page)).all()
        return Page(items, page, per_page, total)


class UserRepository(SQLRepository):
    model = User

    def get_by_email(self, email):
        return self.session.scalar(select(User).where(User.email == email))

    def get_by_username(self, username):
        return self.session.scalar(select(User).where(User.username == username))

    def pending_sellers(self):
        return self.session.scalars(
            select(User)
            .where(User.role == 'seller', User.is_approved.is_(False))
            .order_by(User.created_at.desc(), User.id.desc())
        ).all()

    def search(self, role=None, query_text=None, page=1, per_page=20):
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        if query_text:
            stmt = stmt.where(or_(
                User.username.ilike(f'%{query_text}%'),
                User.email.ilike(f'%{query_text}%')
            ))
        return self.paginate(stmt.order_by(User.created_at.desc(), User.id.desc()), page, per_page)


class BookRepository(SQLRepository):
    model = Book

    SORTS = {
        'newest': (Book.created_at.desc(), Book.id.desc()),
        'price_low': (Book.price.asc(), Book.id.asc()),
        'price_high': (Book.price.desc(), Book.id.asc()),
        'title': (Book.title.asc(), Book.id.asc()),
        'rating': (Book.average_rating.desc(), Book.id.asc()),
    }

    def get_active(self, book_id):
        book = self.get_by_id(book_id)
        if book is None or not book.is_active:
            return None
        return book

    def get_by_isbn(self, isbn):
        return self.session.scalar(select(Book).where(Book.isbn == isbn))

    def get_by_seller(self, seller_id):
        return self.session.scalars(
            select(Book).where(Book.seller_id == seller_id).order_by(Book.created_at.desc(), Book.id.desc())
        ).all()

    def search(self, query_text=None, category=None, author=None, min_price=None,
               max_price=None, sort='newest', page=1, per_page=12, include_inactive=False):
        stmt = select(Book)
        if not include_inactive:
            stmt = stmt.where(Book.is_active.is_(True))
        if query_text:
            stmt = stmt.where(or_(
                Book.title.ilike(f'%{query_text}%'),
                Book.author.ilike(f'%{query_text}%'),
                Book.description.ilike(f'%{query_text}%')
            ))
        if category:
            stmt = stmt.where(Book.category == category)
        if author:
            stmt = stmt.where(Book.author.ilike(f'%{author}%'))
        if min_price is not None:
            stmt = stmt.where(Book.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Book.price <= max_price)
        stmt = stmt.order_by(*self.SORTS.get(sort, self.SORTS['newest']))
        return self.paginate(stmt, page, per_page)

    def reserve_stock(self, book_id, quantity):
        """Take ``quantity`` off an active book's stock in one conditional UPDATE.

        Returns False when the book is inactive or holds fewer than
        ``quantity`` copies; the row is left untouched in that case.
        """
        result = self.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.is_active.is_(True), Book.stock_quantity >= quantity)
            .values(stock_quantity=Book.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        reserved = result.rowcount == 1
        book = self.session.get(Book, book_id)
        if book is not None:
            self.session.expire(book, ['stock_quantity', 'is_active'])
        return reserved

    def set_rating(self, book, average_rating, total_reviews):
        book.average_rating = average_rating
        book.total_reviews = total_reviews
        self.session.flush()
        return book


class CartRepository(SQLRepository):
    model = CartItem

    def items_for(self, user_id):
        return self.session.scalars(
            select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.id)
        ).all()

    def get_for_user(self, user_id, item_id):
        return self.session.scalar(
            select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
        )

    def find(self, user_id, book_id):
        return self.session.scalar(
            select(CartItem).where(CartItem.user_id == user_id, CartItem.book_id == book_id)
        )

    def clear(self, user_id):
        result = self.session.execute(
            delete(CartItem).where(CartItem.user_id == user_id).execution_options(synchronize_session='evaluate')
        )
        return result.rowcount


class OrderRepository(SQLRepository):
    model = Order

    def tracking_id_exists(self, tracking_id):
        return self.session.scalar(
            select(func.count()).select_from(Order).where(Order.tracking_id == tracking_id)
        ) > 0

    def for_user(self, user_id, page=1, per_page=10):
        stmt = select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
        return self.paginate(stmt, page, per_page)

    def for_seller(self, seller_id, status=None, page=1, per_page=10):
        order_ids = select(OrderItem.order_id).where(OrderItem.seller_id == seller_id)
        stmt = select(Order).where(Order.id.in_(order_ids))
        if status:
            stmt = stmt.where(Order.status == status)
        return self.paginate(stmt.order_by(Order.created_at.desc(), Order.id.desc()), page, per_page)

    def search(self, status=None, page=1, per_page=20):
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        return self.paginate(stmt.order_by(Order.created_at.desc(), Order.id.desc()), page, per_page)

    def recent(self, limit=5):
        return self.session.scalars(
            select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
        ).all()

    def revenue(self, statuses):
        return self.session.scalar(
            select(func.coalesce(func.sum(Order.total_price), 0.0)).where(Order.status.in_(statuses))
        )

    def has_delivered_purchase(self, user_id, book_id):
        stmt = (
            select(func.count())
            .select_from(Order)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(Order.user_id == user_id, Order.status == 'delivered', OrderItem.book_id == book_id)
        )
        return self.session.scalar(stmt) > 0

    def seller_sales(self, seller_id):
        """(orders containing the seller's books, value of the seller's lines), cancelled orders excluded"""
        orders, sales = self.session.execute(
            select(
                func.count(func.distinct(OrderItem.order_id)),
                func.coalesce(func.sum(OrderItem.price * OrderItem.quantity), 0.0)
            )
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .where(OrderItem.seller_id == seller_id, Order.status != 'cancelled')
        ).one()
        return int(orders), float(sales)


class ReviewRepository(SQLRepository):
    model = Review

    def find(self, user_id, book_id):
        return self.session.scalar(
            select(Review).where(Review.user_id == user_id, Review.book_id == book_id)
        )

    def approved_for_book(self, book_id):
        return self.session.scalars(
            select(Review)
            .where(Review.book_id == book_id, Review.approved_by_admin.is_(True))
            .order_by(Review.created_at.desc(), Review.id.desc())
        ).all()

    def rating_summary(self, book_id):
        """(sum of ratings, number of reviews) over approved reviews of a book"""
        total, count = self.session.execute(
            select(func.coalesce(func.sum(Review.rating), 0), func.count(Review.id))
            .where(Review.book_id == book_id, Review.approved_by_admin.is_(True))
        ).one()
        return int(total), int(count)

    def search(self, pending_only=False, page=1, per_page=20):
        stmt = select(Review)
        if pending_only:
            stmt = stmt.where(Review.approved_by_admin.is_(False))
        return self.paginate(stmt.order_by(Review.created_at.desc(), Review.id.desc()), page, per_page)


class WishlistRepository(SQLRepository):
    model = WishlistItem

    def find(self, user_id, book_id):
        return self.session.scalar(
            select(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.book_id == book_id)
        )

    def items_for(self, user_id):
        return self.session.scalars(
            select(WishlistItem).where(WishlistItem.user_id == user_id).order_by(WishlistItem.id.desc())
        ).all()


class Store:
    """Handle on the persistent store: one session and its repositories"""

    def __init__(self, session):
        self.session = session
        self.users = UserRepository(session)
        self.books = BookRepository(session)
        self.carts = CartRepository(session)
        self.orders = OrderRepository(session)
        self.reviews = ReviewRepository(session)
        self.wishlist = WishlistRepository(session)

    @contextmanager
    def reading(self):
        """Report database timeouts raised by reads as retryable, nothing-written errors"""
        try:
            yield self
        except TRANSIENT_ERRORS as e:
            logger.warning('Store read failed: %s', e)
            self.session.rollback()
            raise TransientStoreError('read') from e

    @contextmanager
    def transaction(self, conflict=ConflictError):
        """Commit everything done inside the block, or nothing.

        ``conflict`` is the error (class or instance) raised when the
        database rejects the write on a uniqueness constraint.
        """
        try:
            yield self
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.info('Store write rejected by constraint: %s', e.orig)
            raise (conflict() if isinstance(conflict, type) else conflict) from e
        except TRANSIENT_ERRORS as e:
            self.session.rollback()
            logger.warning('Store write failed: %s', e)
            raise TransientStoreError('commit') from e
        except Exception:
            self.session.rollback()
            raise
