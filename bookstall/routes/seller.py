from flask import Blueprint, jsonify, request
from flask_login import current_user
from bookstall import get_store
from bookstall.routes import order_service, page_args
from bookstall.schemas import BookFields, CreateBook, UpdateOrderStatus, UpdateStock, parse
from bookstall.services import CatalogService
from bookstall.utils.decorators import seller_required
from bookstall.utils.email import send_order_status_update

seller_bp = Blueprint('seller', __name__)

LOW_STOCK_THRESHOLD = 5


@seller_bp.route('/dashboard')
@seller_required
def dashboard():
    """Seller dashboard with statistics"""
    books = CatalogService(get_store()).books_for_seller(current_user)
    summary = order_service().seller_summary(current_user)
    return jsonify({
        'total_books': len(books),
        'total_stock': sum(book.stock_quantity for book in books),
        'total_orders': summary['total_orders'],
        'total_sales': summary['total_sales']
    })


@seller_bp.route('/books')
@seller_required
def books():
    """List seller's books, inactive ones included"""
    books = CatalogService(get_store()).books_for_seller(current_user)
    return jsonify({'books': [book.to_dict() for book in books]})


@seller_bp.route('/books', methods=['POST'])
@seller_required
def add_book():
    """Add a new book"""
    command = parse(CreateBook, request.get_json(silent=True))
    book = CatalogService(get_store()).create_book(current_user, command)
    return jsonify({'message': f'Book "{book.title}" added successfully!', 'book': book.to_dict()}), 201


@seller_bp.route('/books/<int:book_id>', methods=['PUT'])
@seller_required
def edit_book(book_id):
    """Edit a book"""
    command = parse(BookFields, request.get_json(silent=True))
    book = CatalogService(get_store()).update_book(current_user, book_id, command)
    return jsonify({'message': f'Book "{book.title}" updated successfully!', 'book': book.to_dict()})


@seller_bp.route('/books/<int:book_id>', methods=['DELETE'])
@seller_required
def delete_book(book_id):
    """Deactivate a book; it stays on record for existing orders"""
    book = CatalogService(get_store()).deactivate_book(current_user, book_id)
    return jsonify({'message': f'Book "{book.title}" has been deactivated.', 'book': book.to_dict()})


@seller_bp.route('/inventory')
@seller_required
def inventory():
    """Inventory management"""
    books = sorted(CatalogService(get_store()).books_for_seller(current_user), key=lambda b: b.stock_quantity)
    return jsonify({
        'books': [book.to_dict() for book in books],
        'low_stock': [book.to_dict() for book in books if book.stock_quantity < LOW_STOCK_THRESHOLD]
    })


@seller_bp.route('/inventory/<int:book_id>', methods=['PUT'])
@seller_required
def update_stock(book_id):
    """Update book stock"""
    command = parse(UpdateStock, request.get_json(silent=True))
    book = CatalogService(get_store()).update_stock(current_user, book_id, command)
    return jsonify({'message': f'Stock updated for "{book.title}".', 'book': book.to_dict()})


@seller_bp.route('/orders')
@seller_required
def orders():
    """Orders containing at least one of the seller's books"""
    page, per_page = page_args(10)
    result = order_service().orders_for_seller(
        current_user, status=request.args.get('status') or None, page=page, per_page=per_page
    )
    return jsonify(result.to_dict(key='orders'))


@seller_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@seller_required
def update_order_status(order_id):
    """Move an order containing the seller's books along its lifecycle"""
    command = parse(UpdateOrderStatus, request.get_json(silent=True))
    orders = order_service()
    previous = orders.get_order(order_id).status
    order = orders.update_status(order_id, current_user, command)
    if order.status != previous:
        send_order_status_update(order)
    return jsonify({'message': f'Order status updated to "{order.status}".', 'order': order.to_dict()})
