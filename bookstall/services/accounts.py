from bookstall.errors import (
    AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from bookstall.models import Book, User

# Orders counted as revenue on the admin dashboard
REVENUE_STATUSES = ('shipped', 'out-for-delivery', 'delivered')


class AccountService:
    """Registration, login checks and the admin side of user management"""

    def __init__(self, store):
        self.store = store

    def register(self, command):
        with self.store.reading():
            if self.store.users.get_by_username(command.username):
                raise ConflictError('Username already exists.', field='username')
            if self.store.users.get_by_email(command.email):
                raise ConflictError('Email already registered.', field='email')

        user = User(
            username=command.username,
            email=command.email,
            role=command.role,
            address=command.address,
            phone=command.phone,
            is_active=True,
            is_approved=(command.role == 'customer')
        )
        user.set_password(command.password)
        with self.store.transaction(conflict=ConflictError('Username or email already registered.')):
            self.store.users.save(user)
        return user

    def authenticate(self, command):
        with self.store.reading():
            user = self.store.users.get_by_email(command.email)
        if user is None or not user.check_password(command.password):
            raise AuthenticationError('Invalid email or password.')
        if not user.is_active:
            raise AuthorizationError('Your account has been deactivated. Please contact support.')
        return user

    def get_user(self, user_id):
        with self.store.reading():
            user = self.store.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError('User not found.', user_id=user_id)
        return user

    def pending_sellers(self):
        with self.store.reading():
            return self.store.users.pending_sellers()

    def search_users(self, role=None, query_text=None, page=1, per_page=20):
        with self.store.reading():
            return self.store.users.search(role=role, query_text=query_text, page=page, per_page=per_page)

    def toggle_active(self, admin, user_id):
        user = self.get_user(user_id)
        if user.id == admin.id:
            raise ValidationError('You cannot deactivate your own account.')
        with self.store.transaction():
            user.is_active = not user.is_active
        return user

    def decide_seller(self, user_id, approved):
        """Approve a seller, or turn a rejected applicant back into a customer"""
        user = self.get_user(user_id)
        if user.role != 'seller':
            raise ValidationError('User is not a seller.', user_id=user_id)
        with self.store.transaction():
            if approved:
                user.is_approved = True
            else:
                user.role = 'customer'
                user.is_approved = True
        return user

    def overview(self):
        with self.store.reading():
            users = self.store.users
            return {
                'total_users': users.count(),
                'total_customers': users.count(User.role == 'customer'),
                'total_sellers': users.count(User.role == 'seller'),
                'pending_sellers': users.count(User.role == 'seller', User.is_approved.is_(False)),
                'total_books': self.store.books.count(Book.is_active.is_(True)),
                'total_orders': self.store.orders.count(),
                'total_revenue': self.store.orders.revenue(REVENUE_STATUSES),
                'recent_orders': [order.to_dict() for order in self.store.orders.recent()]
            }
