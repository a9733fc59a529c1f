from bookstall.errors import ConflictError, NotFoundError
from bookstall.models import WishlistItem


class WishlistService:

    def __init__(self, store):
        self.store = store

    def items(self, user):
        with self.store.reading():
            return [
                item for item in self.store.wishlist.items_for(user.id)
                if item.book is not None and item.book.is_active
            ]

    def add(self, user, command):
        with self.store.reading():
            book = self.store.books.get_active(command.book_id)
            if book is None:
                raise NotFoundError('Book not found.', book_id=command.book_id)
            if self.store.wishlist.find(user.id, book.id) is not None:
                raise ConflictError('Book already in wishlist.', book_id=book.id)

        item = WishlistItem(user_id=user.id, book_id=book.id)
        with self.store.transaction(conflict=ConflictError('Book already in wishlist.', book_id=book.id)):
            self.store.wishlist.save(item)
        return item

    def remove(self, user, book_id):
        with self.store.reading():
            item = self.store.wishlist.find(user.id, book_id)
        if item is None:
            raise NotFoundError('Wishlist item not found.', book_id=book_id)
        with self.store.transaction():
            self.store.wishlist.delete(item)

    def contains(self, user, book_id):
        with self.store.reading():
            return self.store.wishlist.find(user.id, book_id) is not None
