import pytest

from bookstall.errors import (
    AuthorizationError, DuplicateReviewError, NotFoundError, ReviewNotAllowedError
)
from bookstall.schemas import AddReview
from bookstall.services import ReviewService
from bookstall.services.reviews import average

from factories import make_book, make_order, make_user


def review(book, rating=4, comment='Loved it.', title=None):
    return AddReview.model_validate({'book_id': book.id, 'rating': rating, 'comment': comment, 'title': title})


class TestAverage:

    def test_no_ratings(self):
        assert average(0, 0) == 0.0

    @pytest.mark.parametrize('total, count, expected', [
        (9, 2, 4.5),
        (10, 3, 3.3),
        (11, 3, 3.7),
        (5, 1, 5.0),
        (13, 4, 3.3),  # 3.25 rounds half up
    ])
    def test_rounds_to_one_decimal(self, total, count, expected):
        assert average(total, count) == expected


class TestAddReview:

    @pytest.fixture
    def book(self, store, seller):
        return make_book(store, seller)

    def test_requires_a_delivered_order(self, store, customer, book):
        make_order(store, customer, book, status='shipped')
        with pytest.raises(ReviewNotAllowedError) as exc:
            ReviewService(store).add_review(customer, review(book))
        assert isinstance(exc.value, AuthorizationError)
        assert store.reviews.count() == 0

    def test_delivered_buyer_can_review(self, store, customer, book):
        make_order(store, customer, book, status='delivered')
        created = ReviewService(store).add_review(customer, review(book, rating=5, title='Great'))
        assert created.id is not None
        assert created.approved_by_admin is False
        # Pending reviews do not count
        assert book.total_reviews == 0
        assert book.average_rating == 0.0

    def test_second_review_is_a_conflict_and_changes_nothing(self, store, admin, customer, book):
        make_order(store, customer, book, status='delivered')
        service = ReviewService(store)
        service.approve_review(service.add_review(customer, review(book, rating=4)).id, admin)
        assert (book.average_rating, book.total_reviews) == (4.0, 1)

        with pytest.raises(DuplicateReviewError):
            service.add_review(customer, review(book, rating=1))

        assert store.reviews.count() == 1
        assert (book.average_rating, book.total_reviews) == (4.0, 1)

    def test_inactive_book(self, store, customer, book):
        make_order(store, customer, book, status='delivered')
        book.is_active = False
        store.session.commit()
        with pytest.raises(NotFoundError):
            ReviewService(store).add_review(customer, review(book))


class TestApproveReview:

    def test_average_over_approved_reviews_only(self, store, seller, admin):
        book = make_book(store, seller)
        service = ReviewService(store)
        created = []
        for rating in (5, 4, 4, 1):
            buyer = make_user(store)
            make_order(store, buyer, book, status='delivered')
            created.append(service.add_review(buyer, review(book, rating=rating)))

        for item in created[:3]:
            service.approve_review(item.id, admin)

        assert book.total_reviews == 3
        assert book.average_rating == 4.3
        assert [r.rating for r in service.approved_for_book(book.id)].count(1) == 0

    def test_recompute_is_idempotent(self, store, seller, admin):
        book = make_book(store, seller)
        buyer = make_user(store)
        make_order(store, buyer, book, status='delivered')
        service = ReviewService(store)
        service.approve_review(service.add_review(buyer, review(book, rating=3)).id, admin)

        service.recompute_rating(book)
        service.recompute_rating(book)
        assert (book.average_rating, book.total_reviews) == (3.0, 1)

    def test_zero_approved_resets(self, store, seller):
        book = make_book(store, seller, average_rating=4.2, total_reviews=7)
        ReviewService(store).recompute_rating(book)
        assert (book.average_rating, book.total_reviews) == (0.0, 0)

    def test_admin_only(self, store, seller, customer):
        book = make_book(store, seller)
        make_order(store, customer, book, status='delivered')
        service = ReviewService(store)
        created = service.add_review(customer, review(book))
        with pytest.raises(AuthorizationError):
            service.approve_review(created.id, seller)
        assert created.approved_by_admin is False

    def test_unknown_review(self, store, admin):
        with pytest.raises(NotFoundError):
            ReviewService(store).approve_review(42, admin)

    def test_pending_listing(self, store, seller, admin, customer):
        book = make_book(store, seller)
        make_order(store, customer, book, status='delivered')
        service = ReviewService(store)
        service.add_review(customer, review(book))
        assert service.all_reviews(pending_only=True).total == 1
        assert service.approved_for_book(book.id) == []
