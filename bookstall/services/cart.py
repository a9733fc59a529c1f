from bookstall.errors import ConflictError, InsufficientStockError, NotFoundError
from bookstall.models import CartItem


class CartService:
    """A user's cart: one line per book, quantities merged on repeat adds"""

    def __init__(self, store):
        self.store = store

    def view(self, user):
        with self.store.reading():
            items = [
                item for item in self.store.carts.items_for(user.id)
                if item.book is not None and item.book.is_active
            ]
        total = sum(item.get_subtotal() for item in items)
        return items, total

    def add(self, user, command):
        book = self._active_book(command.book_id)
        with self.store.reading():
            item = self.store.carts.find(user.id, book.id)
        quantity = command.quantity + (item.quantity if item else 0)
        # Merged quantity must fit current stock, otherwise the cart stays as it was
        if book.stock_quantity < quantity:
            raise InsufficientStockError(book.id, quantity, book.stock_quantity, title=book.title)

        retry = ConflictError('Cart changed while adding, please retry.', retryable=True)
        with self.store.transaction(conflict=retry):
            if item is None:
                item = self.store.carts.save(CartItem(user_id=user.id, book_id=book.id, quantity=quantity))
            else:
                item.quantity = quantity
        return item

    def update_quantity(self, user, item_id, command):
        item = self._own_item(user, item_id)
        book = self._active_book(item.book_id)
        if book.stock_quantity < command.quantity:
            raise InsufficientStockError(book.id, command.quantity, book.stock_quantity, title=book.title)
        with self.store.transaction():
            item.quantity = command.quantity
        return item

    def remove(self, user, item_id):
        item = self._own_item(user, item_id)
        with self.store.transaction():
            self.store.carts.delete(item)

    def clear(self, user):
        with self.store.transaction():
            removed = self.store.carts.clear(user.id)
        return removed

    def _own_item(self, user, item_id):
        with self.store.reading():
            item = self.store.carts.get_for_user(user.id, item_id)
        if item is None:
            raise NotFoundError('Cart item not found.', item_id=item_id)
        return item

    def _active_book(self, book_id):
        with self.store.reading():
            book = self.store.books.get_active(book_id)
        if book is None:
            raise NotFoundError('Book not found.', book_id=book_id)
        return book
