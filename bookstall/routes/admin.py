from flask import Blueprint, jsonify, request
from flask_login import current_user
from bookstall import get_store
from bookstall.routes import order_service, page_args
from bookstall.schemas import BookFields, SellerDecision, UpdateOrderStatus, parse
from bookstall.services import AccountService, CatalogService, ReviewService
from bookstall.utils.decorators import admin_required
from bookstall.utils.email import send_seller_approval_notification, send_order_status_update

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/dashboard')
@admin_required
def dashboard():
    """Admin dashboard with analytics"""
    return jsonify(AccountService(get_store()).overview())


# Users and sellers

@admin_bp.route('/users')
@admin_required
def users():
    """User management"""
    page, per_page = page_args(20)
    result = AccountService(get_store()).search_users(
        role=request.args.get('role') or None,
        query_text=request.args.get('search', '').strip() or None,
        page=page,
        per_page=per_page
    )
    return jsonify(result.to_dict(key='users'))


@admin_bp.route('/users/<int:user_id>/toggle', methods=['POST'])
@admin_required
def toggle_user(user_id):
    """Activate/deactivate user"""
    user = AccountService(get_store()).toggle_active(current_user, user_id)
    status = 'activated' if user.is_active else 'deactivated'
    return jsonify({'message': f'User "{user.username}" has been {status}.', 'user': user.to_dict()})


@admin_bp.route('/sellers/pending')
@admin_required
def pending_sellers():
    """Pending seller approvals"""
    sellers = AccountService(get_store()).pending_sellers()
    return jsonify({'sellers': [seller.to_dict() for seller in sellers]})


@admin_bp.route('/sellers/<int:user_id>/approve', methods=['PUT'])
@admin_required
def approve_seller(user_id):
    """Approve or reject a seller application"""
    command = parse(SellerDecision, request.get_json(silent=True))
    user = AccountService(get_store()).decide_seller(user_id, command.approved)

    send_seller_approval_notification(user, approved=command.approved)

    if command.approved:
        message = f'Seller "{user.username}" has been approved.'
    else:
        message = f'Seller application for "{user.username}" has been rejected.'
    return jsonify({'message': message, 'user': user.to_dict()})


# Orders

@admin_bp.route('/orders')
@admin_required
def orders():
    """All orders"""
    page, per_page = page_args(20)
    result = order_service().all_orders(status=request.args.get('status') or None, page=page, per_page=per_page)
    return jsonify(result.to_dict(key='orders'))


@admin_bp.route('/orders/<int:order_id>')
@admin_required
def order_detail(order_id):
    """Order detail"""
    return jsonify({'order': order_service().get_order(order_id).to_dict()})


@admin_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@admin_required
def update_order_status(order_id):
    """Update order status"""
    command = parse(UpdateOrderStatus, request.get_json(silent=True))
    orders = order_service()
    previous = orders.get_order(order_id).status
    order = orders.update_status(order_id, current_user, command)
    if order.status != previous:
        send_order_status_update(order)
    return jsonify({'message': f'Order status updated to "{order.status}".', 'order': order.to_dict()})


# Books

@admin_bp.route('/books')
@admin_required
def books():
    """All books, inactive ones included"""
    page, per_page = page_args(20)
    result = CatalogService(get_store()).browse(
        category=request.args.get('category') or None,
        include_inactive=True,
        page=page,
        per_page=per_page
    )
    return jsonify(result.to_dict(key='books'))


@admin_bp.route('/books/<int:book_id>', methods=['PUT'])
@admin_required
def edit_book(book_id):
    command = parse(BookFields, request.get_json(silent=True))
    book = CatalogService(get_store()).update_book(current_user, book_id, command)
    return jsonify({'message': f'Book "{book.title}" updated successfully!', 'book': book.to_dict()})


@admin_bp.route('/books/<int:book_id>', methods=['DELETE'])
@admin_required
def delete_book(book_id):
    book = CatalogService(get_store()).deactivate_book(current_user, book_id)
    return jsonify({'message': f'Book "{book.title}" has been deactivated.', 'book': book.to_dict()})


# Reviews

@admin_bp.route('/reviews')
@admin_required
def reviews():
    """All reviews, or only those awaiting approval with ?pending=1"""
    page, per_page = page_args(20)
    pending_only = request.args.get('pending', '').lower() in ('1', 'true', 'yes')
    result = ReviewService(get_store()).all_reviews(pending_only=pending_only, page=page, per_page=per_page)
    return jsonify(result.to_dict(key='reviews'))


@admin_bp.route('/reviews/<int:review_id>/approve', methods=['PUT'])
@admin_required
def approve_review(review_id):
    """Approve a review and refresh the book's rating"""
    review = ReviewService(get_store()).approve_review(review_id, current_user)
    return jsonify({
        'message': 'Review approved successfully.',
        'review': review.to_dict(),
        'book': review.book.to_dict()
    })
