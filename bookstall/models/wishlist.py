from bookstall import db
from datetime import datetime


class WishlistItem(db.Model):
    __tablename__ = 'wishlist_items'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'book_id', name='uq_wishlist_items_user_book'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey('books.id'), nullable=False)
    added_at = db.Column(db.DateTime, default=datetime.utcnow)

    book = db.relationship('Book')

    def to_dict(self):
        return {
            'id': self.id,
            'book_id': self.book_id,
            'book': self.book.to_dict() if self.book else None,
            'added_at': self.added_at.isoformat() if self.added_at else None
        }

    def __repr__(self):
        return f'<WishlistItem {self.user_id}:{self.book_id}>'
