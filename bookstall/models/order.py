from bookstall import db
from datetime import datetime
import random
import string


# Forward fulfillment order; 'cancelled' is a side branch
ORDER_STATUSES = ('ordered', 'confirmed', 'packing', 'shipped', 'out-for-delivery', 'delivered')
CANCELLED = 'cancelled'
TERMINAL_STATUSES = ('delivered', CANCELLED)

EXPECTED_DELIVERY_DAYS = 7


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    tracking_id = db.Column(db.String(50), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    total_price = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(50), nullable=False, default='ordered')
    shipping_address = db.Column(db.JSON, nullable=False)
    payment_method = db.Column(db.String(20), nullable=False, default='COD')
    payment_status = db.Column(db.String(20), nullable=False, default='Pending')
    expected_delivery = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan',
                            order_by='OrderItem.id')

    @staticmethod
    def generate_tracking_id():
        timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
        random_str = ''.join(random.choices(string.ascii_uppercase + string.digits, k=5))
        return f'ORD-{timestamp}-{random_str}'

    def calculate_total(self):
        return sum(item.get_subtotal() for item in self.items)

    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def seller_ids(self):
        return {item.seller_id for item in self.items}

    def to_dict(self):
        return {
            'id': self.id,
            'tracking_id': self.tracking_id,
            'user_id': self.user_id,
            'items': [item.to_dict() for item in self.items],
            'total_price': self.total_price,
            'status': self.status,
            'shipping_address': self.shipping_address,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'expected_delivery': self.expected_delivery.isoformat() if self.expected_delivery else None,
            'delivered_at': self.delivered_at.isoformat() if self.delivered_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'cancellation_reason': self.cancellation_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Order {self.tracking_id}>'


class OrderItem(db.Model):
    """Line of an order, frozen from the book at the moment of purchase"""
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey('books.id'), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)  # Price at time of purchase
    title = db.Column(db.String(200), nullable=False)
    author = db.Column(db.String(150), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    @classmethod
    def snapshot(cls, book, quantity):
        return cls(
            book_id=book.id,
            seller_id=book.seller_id,
            quantity=quantity,
            price=book.price,
            title=book.title,
            author=book.author,
            image_url=book.image_url
        )

    def get_subtotal(self):
        return self.quantity * self.price

    def to_dict(self):
        return {
            'book_id': self.book_id,
            'seller_id': self.seller_id,
            'quantity': self.quantity,
            'price': self.price,
            'title': self.title,
            'author': self.author,
            'image_url': self.image_url,
            'subtotal': self.get_subtotal()
        }

    def __repr__(self):
        return f'<OrderItem {self.id}>'
