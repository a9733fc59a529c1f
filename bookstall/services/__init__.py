from bookstall.services.accounts import AccountService
from bookstall.services.cart import CartService
from bookstall.services.catalog import CatalogService
from bookstall.services.orders import OrderService
from bookstall.services.reviews import ReviewService
from bookstall.services.wishlist import WishlistService

__all__ = [
    'AccountService',
    'CartService',
    'CatalogService',
    'OrderService',
    'ReviewService',
    'WishlistService'
]
