"""Role gates for view functions.

Failures raise the marketplace errors, which the app renders as JSON 401/403.
"""
from functools import wraps
from flask_login import current_user

from bookstall.errors import AuthenticationError, AuthorizationError


def role_required(allowed, message):
    """Let the view run only for a logged-in user for whom ``allowed(user)`` holds"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthenticationError()
            if not allowed(current_user):
                raise AuthorizationError(message)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = role_required(lambda user: user.is_admin(), 'Admin access required.')
customer_required = role_required(lambda user: user.is_customer(), 'Customer access required.')


def seller_required(f):
    """Approved sellers only; a pending seller is told why"""
    @role_required(lambda user: user.is_seller(), 'Seller access required.')
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_approved:
            raise AuthorizationError('Your seller account is pending approval.')
        return f(*args, **kwargs)
    return decorated_function
