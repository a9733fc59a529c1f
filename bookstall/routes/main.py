from flask import Blueprint, jsonify, request
from bookstall import get_store
from bookstall.models.book import CATEGORIES
from bookstall.routes import page_args
from bookstall.services import CatalogService, ReviewService

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """Landing data: newest books and the category list"""
    featured = CatalogService(get_store()).browse(sort='newest', page=1, per_page=8)
    return jsonify({
        'featured_books': [book.to_dict() for book in featured.items],
        'categories': list(CATEGORIES)
    })


@main_bp.route('/categories')
def categories():
    return jsonify({'categories': list(CATEGORIES)})


@main_bp.route('/books')
def books():
    """Book catalog with search, filters and sorting"""
    page, per_page = page_args()
    result = CatalogService(get_store()).browse(
        query_text=request.args.get('q', '').strip() or None,
        category=request.args.get('category') or None,
        author=request.args.get('author') or None,
        min_price=request.args.get('min_price', type=float),
        max_price=request.args.get('max_price', type=float),
        sort=request.args.get('sort', 'newest'),
        page=page,
        per_page=per_page
    )
    return jsonify(result.to_dict(key='books'))


@main_bp.route('/books/<int:book_id>')
def book_detail(book_id):
    """Book detail page"""
    catalog = CatalogService(get_store())
    book = catalog.get_book(book_id)
    return jsonify({
        'book': book.to_dict(),
        'related_books': [related.to_dict() for related in catalog.related_books(book)]
    })


@main_bp.route('/books/<int:book_id>/reviews')
def book_reviews(book_id):
    """Approved reviews of a book"""
    reviews = ReviewService(get_store()).approved_for_book(book_id)
    return jsonify({'reviews': [review.to_dict() for review in reviews]})
