from bookstall import db
from datetime import datetime


class CartItem(db.Model):
    __tablename__ = 'cart_items'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'book_id', name='uq_cart_items_user_book'),
        db.CheckConstraint('quantity >= 1', name='ck_cart_items_quantity_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey('books.id'), nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    added_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    book = db.relationship('Book')

    def get_subtotal(self):
        return self.quantity * self.book.price if self.book else 0

    def to_dict(self):
        return {
            'id': self.id,
            'book_id': self.book_id,
            'quantity': self.quantity,
            'subtotal': self.get_subtotal(),
            'book': self.book.to_dict() if self.book else None,
            'added_at': self.added_at.isoformat() if self.added_at else None
        }

    def __repr__(self):
        return f'<CartItem {self.user_id}:{self.book_id} x{self.quantity}>'
