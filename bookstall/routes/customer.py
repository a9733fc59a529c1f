from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from bookstall import get_store
from bookstall.routes import order_service, page_args
from bookstall.schemas import AddReview, AddToCart, AddToWishlist, PlaceOrder, UpdateCartQuantity, parse
from bookstall.services import CartService, ReviewService, WishlistService
from bookstall.utils.decorators import customer_required
from bookstall.utils.email import send_order_confirmation

customer_bp = Blueprint('customer', __name__)


@customer_bp.route('/dashboard')
@login_required
def dashboard():
    """Customer dashboard"""
    recent_orders = order_service().orders_for_user(current_user, page=1, per_page=5)
    items, _ = CartService(get_store()).view(current_user)
    return jsonify({
        'recent_orders': [order.to_dict() for order in recent_orders.items],
        'cart_count': sum(item.quantity for item in items)
    })


# Cart

@customer_bp.route('/cart')
@login_required
def cart():
    """View shopping cart"""
    items, total = CartService(get_store()).view(current_user)
    return jsonify({'items': [item.to_dict() for item in items], 'total': total})


@customer_bp.route('/cart', methods=['POST'])
@login_required
def add_to_cart():
    """Add book to cart"""
    command = parse(AddToCart, request.get_json(silent=True))
    item = CartService(get_store()).add(current_user, command)
    return jsonify({'message': f'"{item.book.title}" added to cart!', 'item': item.to_dict()})


@customer_bp.route('/cart/<int:item_id>', methods=['PUT'])
@login_required
def update_cart_item(item_id):
    """Update cart item quantity"""
    command = parse(UpdateCartQuantity, request.get_json(silent=True))
    item = CartService(get_store()).update_quantity(current_user, item_id, command)
    return jsonify({'message': 'Cart updated.', 'item': item.to_dict()})


@customer_bp.route('/cart/<int:item_id>', methods=['DELETE'])
@login_required
def remove_from_cart(item_id):
    """Remove item from cart"""
    CartService(get_store()).remove(current_user, item_id)
    return jsonify({'message': 'Item removed from cart.'})


@customer_bp.route('/cart', methods=['DELETE'])
@login_required
def clear_cart():
    removed = CartService(get_store()).clear(current_user)
    return jsonify({'message': 'Cart cleared.', 'removed': removed})


# Orders

@customer_bp.route('/checkout', methods=['POST'])
@customer_required
def checkout():
    """Place an order from the whole cart"""
    command = parse(PlaceOrder, request.get_json(silent=True))
    order = order_service().place_order(current_user, command)
    send_order_confirmation(order)
    return jsonify({
        'message': f'Order placed successfully! Tracking ID: {order.tracking_id}',
        'order': order.to_dict()
    }), 201


@customer_bp.route('/orders')
@login_required
def orders():
    """Order history"""
    page, per_page = page_args(10)
    result = order_service().orders_for_user(current_user, page=page, per_page=per_page)
    return jsonify(result.to_dict(key='orders'))


@customer_bp.route('/orders/<int:order_id>')
@login_required
def order_detail(order_id):
    """Order detail, visible to its owner, a seller of one of its books, or an admin"""
    order = order_service().get_order_for(order_id, current_user)
    return jsonify({'order': order.to_dict()})


# Reviews

@customer_bp.route('/reviews', methods=['POST'])
@customer_required
def add_review():
    """Review a book from a delivered order; shown once an admin approves it"""
    command = parse(AddReview, request.get_json(silent=True))
    review = ReviewService(get_store()).add_review(current_user, command)
    return jsonify({
        'message': 'Review submitted and awaiting approval.',
        'review': review.to_dict()
    }), 201


# Wishlist

@customer_bp.route('/wishlist')
@login_required
def wishlist():
    items = WishlistService(get_store()).items(current_user)
    return jsonify({'items': [item.to_dict() for item in items]})


@customer_bp.route('/wishlist', methods=['POST'])
@login_required
def add_to_wishlist():
    command = parse(AddToWishlist, request.get_json(silent=True))
    item = WishlistService(get_store()).add(current_user, command)
    return jsonify({'message': 'Item added to wishlist.', 'item': item.to_dict()}), 201


@customer_bp.route('/wishlist/<int:book_id>', methods=['DELETE'])
@login_required
def remove_from_wishlist(book_id):
    WishlistService(get_store()).remove(current_user, book_id)
    return jsonify({'message': 'Item removed from wishlist.'})


@customer_bp.route('/wishlist/<int:book_id>')
@login_required
def wishlist_check(book_id):
    return jsonify({'in_wishlist': WishlistService(get_store()).contains(current_user, book_id)})
