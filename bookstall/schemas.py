"""Typed request commands, validated once at the HTTP boundary.

Routes turn the raw JSON body into one of these with :func:`parse`; the
services only ever see validated commands.
"""
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from bookstall.errors import ValidationError
from bookstall.models.book import CATEGORIES
from bookstall.models.order import CANCELLED, ORDER_STATUSES


class Command(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore', frozen=True)


def parse(command_cls, payload):
    """Validate ``payload`` into ``command_cls`` or raise a field-level ValidationError"""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object.')
    try:
        return command_cls.model_validate(payload)
    except PydanticValidationError as e:
        fields = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in e.errors()
        ]
        raise ValidationError('Invalid request.', fields=fields) from e


# Orders

class ShippingAddress(Command):
    name: str = Field(min_length=1, max_length=100)
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default='India', min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=20)


class PlaceOrder(Command):
    shipping_address: ShippingAddress
    payment_method: Literal['COD', 'Card', 'UPI', 'NetBanking'] = 'COD'


class UpdateOrderStatus(Command):
    status: str
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator('status')
    @classmethod
    def known_target(cls, value):
        targets = ORDER_STATUSES[1:] + (CANCELLED,)
        if value not in targets:
            raise ValueError(f'status must be one of: {", ".join(targets)}')
        return value


# Cart and wishlist

class AddToCart(Command):
    book_id: int
    quantity: int = Field(default=1, ge=1)


class UpdateCartQuantity(Command):
    quantity: int = Field(ge=1)


class AddToWishlist(Command):
    book_id: int


# Reviews

class AddReview(Command):
    book_id: int
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=1000)
    title: Optional[str] = Field(default=None, max_length=100)


# Catalog

class BookFields(Command):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    author: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    category: Optional[str] = None
    publisher: Optional[str] = Field(default=None, max_length=150)
    publication_date: Optional[date] = None
    language: Optional[str] = Field(default=None, max_length=50)
    pages: Optional[int] = Field(default=None, ge=1)
    isbn: Optional[str] = Field(default=None, max_length=20)
    price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator('title', 'author', 'price', 'stock_quantity', 'is_active')
    @classmethod
    def not_null(cls, value):
        # May be left out of an update, but never cleared
        if value is None:
            raise ValueError('must not be null')
        return value

    @field_validator('category')
    @classmethod
    def known_category(cls, value):
        if value is not None and value not in CATEGORIES:
            raise ValueError(f'category must be one of: {", ".join(CATEGORIES)}')
        return value

    def changes(self):
        return self.model_dump(exclude_unset=True)


class CreateBook(BookFields):
    title: str = Field(min_length=1, max_length=200)
    author: str = Field(min_length=1, max_length=150)
    price: float = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)


class UpdateStock(Command):
    stock_quantity: int = Field(ge=0)


# Accounts

class Register(Command):
    username: str = Field(min_length=3, max_length=80)
    email: str = Field(max_length=120)
    password: str = Field(min_length=6, max_length=128)
    role: Literal['customer', 'seller'] = 'customer'
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator('email')
    @classmethod
    def looks_like_email(cls, value):
        if '@' not in value:
            raise ValueError('Please enter a valid email address.')
        return value.lower()


class Login(Command):
    email: str
    password: str
    remember: bool = False

    @field_validator('email')
    @classmethod
    def lower_email(cls, value):
        return value.lower()


class SellerDecision(Command):
    approved: bool = True
