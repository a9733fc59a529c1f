from flask import Flask, g, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException
import logging
import os

db = SQLAlchemy()
login_manager = LoginManager()
mail = Mail()
migrate = Migrate()
csrf = CSRFProtect()


def create_app(config_name=None):
    from bookstall.config import config, engine_options

    app = Flask(__name__)

    # Configuration
    config_name = config_name or os.environ.get('FLASK_CONFIG', 'default')
    app.config.from_object(config[config_name])
    app.config.setdefault(
        'SQLALCHEMY_ENGINE_OPTIONS',
        engine_options(app.config['SQLALCHEMY_DATABASE_URI'], app.config['STORE_TIMEOUT'])
    )

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Import models
    from bookstall.models import User

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        from bookstall.errors import AuthenticationError
        error = AuthenticationError()
        return jsonify(error.to_dict()), error.status_code

    register_error_handlers(app)

    # Register blueprints
    from bookstall.routes.main import main_bp
    from bookstall.routes.auth import auth_bp
    from bookstall.routes.customer import customer_bp
    from bookstall.routes.seller import seller_bp
    from bookstall.routes.admin import admin_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(customer_bp, url_prefix='/customer')
    app.register_blueprint(seller_bp, url_prefix='/seller')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    from bookstall.cli import register_commands
    register_commands(app)

    # Create tables
    with app.app_context():
        db.create_all()

    return app


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('bookstall').setLevel(level)
    app.logger.setLevel(level)


def register_error_handlers(app):
    from sqlalchemy.exc import OperationalError
    from bookstall.errors import BookstallError, TransientStoreError

    @app.errorhandler(BookstallError)
    def handle_bookstall_error(error):
        if error.status_code >= 500:
            app.logger.warning('%s: %s', error.code, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(OperationalError)
    def handle_store_unavailable(error):
        app.logger.warning('Database unavailable: %s', error)
        db.session.rollback()
        return handle_bookstall_error(TransientStoreError('read'))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        payload = {'error': error.name.lower().replace(' ', '_'), 'message': error.description}
        return jsonify(payload), error.code


def get_store():
    """The Store bound to this request's database session"""
    from bookstall.utils.repositories import Store

    if 'store' not in g:
        g.store = Store(db.session)
    return g.store
