import click

from bookstall import db, get_store
from bookstall.models import Book, User


SAMPLE_BOOKS = [
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "price": 12.99, "stock_quantity": 50, "category": "Fiction", "description": "A classic novel of the Jazz Age."},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "price": 14.99, "stock_quantity": 35, "category": "Fiction", "description": "A gripping tale of racial injustice."},
    {"title": "1984", "author": "George Orwell", "price": 11.99, "stock_quantity": 40, "category": "Fiction", "description": "A dystopian social science fiction novel."},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "price": 10.99, "stock_quantity": 30, "category": "Romance", "description": "A romantic novel of manners."},
    {"title": "Sapiens: A Brief History", "author": "Yuval Noah Harari", "price": 18.99, "stock_quantity": 45, "category": "History", "description": "A journey through humanity's history."},
    {"title": "Atomic Habits", "author": "James Clear", "price": 16.99, "stock_quantity": 60, "category": "Self-Help", "description": "Tiny changes, remarkable results."},
    {"title": "Brief History of Time", "author": "Stephen Hawking", "price": 17.99, "stock_quantity": 25, "category": "Science", "description": "Exploring the universe's mysteries."},
    {"title": "Harry Potter and the Sorcerer's Stone", "author": "J.K. Rowling", "price": 14.99, "stock_quantity": 100, "category": "Children", "description": "The beginning of the magical journey."},
]


def ensure_user(username, email, password, role):
    store = get_store()
    user = store.users.get_by_email(email)
    if user is None:
        user = User(username=username, email=email, role=role, is_active=True, is_approved=True)
        user.set_password(password)
        with store.transaction():
            store.users.save(user)
        click.echo(f"Created {role}: {email} / {password}")
    return user


def register_commands(app):

    @app.cli.command('create-admin')
    @click.option('--email', default='admin@bookstall.com')
    @click.option('--password', default='admin123')
    def create_admin(email, password):
        """Create the default admin account if it does not exist."""
        ensure_user('admin', email, password, 'admin')

    @app.cli.command('seed')
    def seed():
        """Add a sample seller and sample books."""
        ensure_user('admin', 'admin@bookstall.com', 'admin123', 'admin')
        seller = ensure_user('bookstore', 'seller@bookstall.com', 'seller123', 'seller')

        added = 0
        for book_data in SAMPLE_BOOKS:
            existing = db.session.scalar(db.select(Book).filter_by(title=book_data["title"]))
            if existing is None:
                db.session.add(Book(seller_id=seller.id, **book_data))
                click.echo(f"Added: {book_data['title']}")
                added += 1

        db.session.commit()
        click.echo(f"\nSample data added successfully! ({added} new books)")
