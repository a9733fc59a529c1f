"""Error taxonomy shared by the services and the HTTP layer.

Every error raised on purpose by the marketplace derives from
:class:`BookstallError`; the application factory registers a handler that
renders it as JSON with the status code declared on the class.
"""


class BookstallError(Exception):
    status_code = 500
    code = 'internal_error'
    message = 'Something went wrong.'

    def __init__(self, message=None, **details):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self):
        payload = {'error': self.code, 'message': self.message}
        payload.update(self.details)
        return payload


class ValidationError(BookstallError):
    """Missing or malformed input; the caller has to fix the request."""
    status_code = 400
    code = 'validation_error'
    message = 'Invalid request.'


class EmptyCartError(ValidationError):
    code = 'empty_cart'
    message = 'Cart is empty.'


class InvalidStatusTransitionError(ValidationError):
    code = 'invalid_status_transition'

    def __init__(self, current, target):
        super().__init__(
            f'Cannot move order from "{current}" to "{target}".',
            current_status=current,
            requested_status=target
        )


class AuthenticationError(BookstallError):
    status_code = 401
    code = 'authentication_required'
    message = 'Please log in to continue.'


class AuthorizationError(BookstallError):
    status_code = 403
    code = 'forbidden'
    message = 'You do not have permission to perform this action.'


class ReviewNotAllowedError(AuthorizationError):
    code = 'review_not_allowed'
    message = 'You can only review books from a delivered order.'


class NotFoundError(BookstallError):
    status_code = 404
    code = 'not_found'
    message = 'Resource not found.'


class ConflictError(BookstallError):
    """Uniqueness violation. ``retryable`` tells the caller a plain retry may succeed."""
    status_code = 409
    code = 'conflict'
    message = 'The resource already exists.'

    def __init__(self, message=None, retryable=False, **details):
        super().__init__(message, retryable=retryable, **details)
        self.retryable = retryable


class DuplicateReviewError(ConflictError):
    code = 'duplicate_review'
    message = 'You have already reviewed this book.'


class BookUnavailableError(BookstallError):
    status_code = 409
    code = 'book_unavailable'

    def __init__(self, book_id, title=None):
        super().__init__(
            f'Book "{title or book_id}" is no longer available.',
            book_id=book_id
        )
        self.book_id = book_id


class InsufficientStockError(BookstallError):
    status_code = 409
    code = 'insufficient_stock'

    def __init__(self, book_id, requested, available, title=None):
        super().__init__(
            f'Insufficient stock for "{title or book_id}": '
            f'requested {requested}, available {available}.',
            book_id=book_id,
            requested=requested,
            available=available,
            shortfall=requested - available
        )
        self.book_id = book_id
        self.requested = requested
        self.available = available

    @property
    def shortfall(self):
        return self.requested - self.available


class TransientStoreError(BookstallError):
    """The database timed out or was unavailable.

    ``phase`` is ``read`` when nothing was written, ``commit`` when the
    failure hit the write step and the caller should check its order
    history before retrying.
    """
    status_code = 503
    code = 'store_unavailable'

    def __init__(self, phase='read', message=None):
        if message is None:
            if phase == 'commit':
                message = 'Storage failed while saving; check your orders before retrying.'
            else:
                message = 'Storage is temporarily unavailable; nothing was changed, please retry.'
        super().__init__(message, phase=phase, retryable=True)
        self.phase = phase
