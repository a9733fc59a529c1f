from bookstall.errors import AuthorizationError, ConflictError, NotFoundError
from bookstall.models import Book


class CatalogService:
    """Book listings. Books are never hard-deleted; old order lines point at them."""

    def __init__(self, store):
        self.store = store

    def browse(self, **filters):
        with self.store.reading():
            return self.store.books.search(**filters)

    def get_book(self, book_id):
        with self.store.reading():
            book = self.store.books.get_active(book_id)
        if book is None:
            raise NotFoundError('Book not found.', book_id=book_id)
        return book

    def related_books(self, book, limit=4):
        if not book.category:
            return []
        with self.store.reading():
            candidates = self.store.books.search(category=book.category, page=1, per_page=limit + 1)
        return [other for other in candidates.items if other.id != book.id][:limit]

    def books_for_seller(self, seller):
        with self.store.reading():
            return self.store.books.get_by_seller(seller.id)

    def create_book(self, actor, command):
        if not (actor.is_admin() or actor.is_approved_seller()):
            raise AuthorizationError('Seller access required.')
        fields = command.model_dump(exclude_none=True)
        self._check_isbn(fields.get('isbn'))
        book = Book(seller_id=actor.id, **fields)
        with self.store.transaction(conflict=self._isbn_conflict(fields.get('isbn'))):
            self.store.books.save(book)
        return book

    def update_book(self, actor, book_id, command):
        book = self._editable(actor, book_id)
        changes = command.changes()
        self._check_isbn(changes.get('isbn'), book)
        with self.store.transaction(conflict=self._isbn_conflict(changes.get('isbn'))):
            for key, value in changes.items():
                setattr(book, key, value)
        return book

    def deactivate_book(self, actor, book_id):
        book = self._editable(actor, book_id)
        with self.store.transaction():
            book.is_active = False
        return book

    def update_stock(self, actor, book_id, command):
        book = self._editable(actor, book_id)
        with self.store.transaction():
            book.stock_quantity = command.stock_quantity
        return book

    def _editable(self, actor, book_id):
        with self.store.reading():
            book = self.store.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError('Book not found.', book_id=book_id)
        if actor.is_admin():
            return book
        if actor.is_approved_seller() and book.seller_id == actor.id:
            return book
        raise AuthorizationError('Not authorized to modify this book.')

    def _check_isbn(self, isbn, book=None):
        if not isbn:
            return
        with self.store.reading():
            existing = self.store.books.get_by_isbn(isbn)
        if existing is not None and existing is not book:
            raise self._isbn_conflict(isbn)

    @staticmethod
    def _isbn_conflict(isbn):
        if isbn:
            return ConflictError('ISBN already exists.', isbn=isbn)
        return ConflictError
