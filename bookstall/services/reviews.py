"""Reviews and the derived rating of a book.

Only admin-approved reviews count toward ``Book.average_rating`` and
``Book.total_reviews``; both are recomputed from scratch every time, so
running the recomputation twice leaves the same values.
"""
from decimal import Decimal, ROUND_HALF_UP
import logging

from bookstall.errors import (
    AuthorizationError, DuplicateReviewError, NotFoundError, ReviewNotAllowedError
)
from bookstall.models import Review

logger = logging.getLogger(__name__)


def average(total, count):
    """Mean rounded half-up to one decimal; 0.0 for no ratings"""
    if count == 0:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


class ReviewService:

    def __init__(self, store):
        self.store = store

    def add_review(self, user, command):
        with self.store.reading():
            book = self.store.books.get_active(command.book_id)
            if book is None:
                raise NotFoundError('Book not found.', book_id=command.book_id)
            if not self.store.orders.has_delivered_purchase(user.id, book.id):
                raise ReviewNotAllowedError(book_id=book.id)
            if self.store.reviews.find(user.id, book.id) is not None:
                raise DuplicateReviewError(book_id=book.id)

        review = Review(
            user_id=user.id,
            book_id=book.id,
            rating=command.rating,
            title=command.title,
            comment=command.comment
        )
        with self.store.transaction(conflict=DuplicateReviewError(book_id=book.id)):
            self.store.reviews.save(review)
            self.recompute_rating(book)
        return review

    def approve_review(self, review_id, actor):
        if not actor.is_admin():
            raise AuthorizationError('Admin access required.')
        with self.store.reading():
            review = self.store.reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError('Review not found.', review_id=review_id)

        with self.store.transaction():
            review.approved_by_admin = True
            self.store.reviews.save(review)
            book = self.recompute_rating(review.book)

        logger.info('Review %s approved; book %s now rated %.1f over %d review(s)',
                    review.id, book.id, book.average_rating, book.total_reviews)
        return review

    def recompute_rating(self, book):
        total, count = self.store.reviews.rating_summary(book.id)
        return self.store.books.set_rating(book, average(total, count), count)

    def approved_for_book(self, book_id):
        with self.store.reading():
            if self.store.books.get_active(book_id) is None:
                raise NotFoundError('Book not found.', book_id=book_id)
            return self.store.reviews.approved_for_book(book_id)

    def all_reviews(self, pending_only=False, page=1, per_page=20):
        with self.store.reading():
            return self.store.reviews.search(pending_only=pending_only, page=page, per_page=per_page)
