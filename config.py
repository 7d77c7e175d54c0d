"""
CastBoard Configuration Module
Handles environment variables and application settings
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name, default):
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Base configuration class"""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = _env_flag('DEBUG', 'False')

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URI', 'sqlite:///castboard.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _env_flag('SQLALCHEMY_ECHO', 'False')

    # Logging
    LOG_FOLDER = os.getenv('LOG_FOLDER', os.path.join(os.path.dirname(__file__), 'logs'))
    APP_LOG_FILE = os.getenv('APP_LOG_FILE', os.path.join(LOG_FOLDER, 'app.log'))

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')

    # Rate Limiting
    RATELIMIT_ENABLED = _env_flag('RATELIMIT_ENABLED', 'True')
    RATELIMIT_STORAGE_URL = os.getenv('RATELIMIT_STORAGE_URL', 'memory://')
    API_RATE_LIMIT = int(os.getenv('API_RATE_LIMIT', '600'))  # Requests per minute per client

    # Real-time channel
    REALTIME_NAMESPACE = os.getenv('REALTIME_NAMESPACE', '/signage')
    GLOBAL_TOPIC = os.getenv('GLOBAL_TOPIC', 'global')

    # Broadcasting
    # Adding a TV to a content target list starts a broadcast of that content on it
    AUTO_BROADCAST_ON_ASSIGN = _env_flag('AUTO_BROADCAST_ON_ASSIGN', 'True')
    DEFAULT_CONTENT_DURATION = int(os.getenv('DEFAULT_CONTENT_DURATION', '15'))

    # Initial owner account (seeded by init_db.py)
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@castboard.local')

    # Server
    FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.getenv('FLASK_PORT', '5000'))

    @staticmethod
    def init_app(app):
        """Initialize application with config-specific settings"""
        os.makedirs(app.config['LOG_FOLDER'], exist_ok=True)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URI', 'sqlite:///castboard.db')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    RATELIMIT_ENABLED = False
    AUTO_BROADCAST_ON_ASSIGN = True

    @staticmethod
    def init_app(app):
        pass


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
