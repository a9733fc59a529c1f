from bookstall.models.user import User
from bookstall.models.book import Book
from bookstall.models.cart import CartItem
from bookstall.models.order import Order, OrderItem
from bookstall.models.review import Review
from bookstall.models.wishlist import WishlistItem

__all__ = ['User', 'Book', 'CartItem', 'Order', 'OrderItem', 'Review', 'WishlistItem']
