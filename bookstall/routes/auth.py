from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from bookstall import get_store
from bookstall.schemas import Login, Register, parse
from bookstall.services import AccountService
from bookstall.utils.email import send_welcome_email

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token to send back in the X-CSRFToken header on writes"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/register', methods=['POST'])
def register():
    """User registration"""
    command = parse(Register, request.get_json(silent=True))
    user = AccountService(get_store()).register(command)

    send_welcome_email(user)

    if user.role == 'seller':
        message = 'Registration successful! Your seller account is pending approval.'
    else:
        message = 'Registration successful! Please log in.'
    return jsonify({'message': message, 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login"""
    command = parse(Login, request.get_json(silent=True))
    user = AccountService(get_store()).authenticate(command)
    login_user(user, remember=command.remember)

    message = f'Welcome back, {user.username}!'
    if user.is_seller() and not user.is_approved:
        message = 'Your seller account is pending approval.'
    return jsonify({'message': message, 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    logout_user()
    return jsonify({'message': 'You have been logged out.'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
