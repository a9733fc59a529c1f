from bookstall import db
from datetime import datetime


CATEGORIES = (
    'Fiction', 'Non-Fiction', 'Science', 'Technology', 'Biography', 'History',
    'Romance', 'Mystery', 'Fantasy', 'Self-Help', 'Education', 'Children'
)


class Book(db.Model):
    __tablename__ = 'books'
    __table_args__ = (
        db.CheckConstraint('stock_quantity >= 0', name='ck_books_stock_non_negative'),
        db.CheckConstraint('price >= 0', name='ck_books_price_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    author = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=True)
    publisher = db.Column(db.String(150), nullable=True)
    publication_date = db.Column(db.Date, nullable=True)
    language = db.Column(db.String(50), default='English')
    pages = db.Column(db.Integer, nullable=True)
    isbn = db.Column(db.String(20), unique=True, nullable=True)
    price = db.Column(db.Float, nullable=False)
    original_price = db.Column(db.Float, nullable=True)
    stock_quantity = db.Column(db.Integer, default=0, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    # Derived from approved reviews, never set from user input
    average_rating = db.Column(db.Float, default=0.0)
    total_reviews = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'description': self.description,
            'category': self.category,
            'publisher': self.publisher,
            'publication_date': self.publication_date.isoformat() if self.publication_date else None,
            'language': self.language,
            'pages': self.pages,
            'isbn': self.isbn,
            'price': self.price,
            'original_price': self.original_price,
            'stock_quantity': self.stock_quantity,
            'image_url': self.image_url,
            'is_active': self.is_active,
            'average_rating': self.average_rating,
            'total_reviews': self.total_reviews,
            'seller_id': self.seller_id,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Book {self.title}>'
