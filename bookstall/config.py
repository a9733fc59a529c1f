import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///bookstall.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds to wait on the database before a call is reported as transient
    STORE_TIMEOUT = float(os.environ.get('STORE_TIMEOUT', 5))

    ORDER_TRACKING_ID_ATTEMPTS = int(os.environ.get('ORDER_TRACKING_ID_ATTEMPTS', 3))
    ITEMS_PER_PAGE = int(os.environ.get('ITEMS_PER_PAGE', 12))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Mail settings
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 25))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'False').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@bookstall.com')

    # AWS Settings
    USE_AWS = os.environ.get('USE_AWS', 'False').lower() == 'true'
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')
    SNS_TOPIC_ARN = os.environ.get('SNS_TOPIC_ARN')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    USE_AWS = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def engine_options(database_uri, timeout):
    """Driver connect arguments that bound how long a database call may block"""
    if database_uri.startswith('sqlite'):
        return {'connect_args': {'timeout': timeout}}
    return {'connect_args': {'connect_timeout': max(int(timeout), 1)}}
