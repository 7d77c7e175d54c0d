"""
CastBoard - TV Content Broadcasting Dashboard
Main Flask application entry point
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_socketio import SocketIO

from config import config
from models import db

# Global instances
socketio = SocketIO()


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Initialize extensions
    db.init_app(app)

    # CORS configuration
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config['CORS_ORIGINS'],
            "methods": ["GET", "POST", "PUT", "DELETE"],
            "allow_headers": ["Content-Type"]
        }
    })

    # Rate limiting
    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=[f"{app.config['API_RATE_LIMIT']} per minute"],
        storage_uri=app.config['RATELIMIT_STORAGE_URL'],
        enabled=app.config['RATELIMIT_ENABLED']
    )

    # SocketIO initialization
    cors_origins = app.config['CORS_ORIGINS']
    if cors_origins == ['*']:
        cors_origins = '*'
    socketio.init_app(app,
                      cors_allowed_origins=cors_origins,
                      async_mode='threading',
                      logger=app.config['DEBUG'],
                      engineio_logger=app.config['DEBUG'])

    # SocketIO event handlers, on the namespace the event bus publishes to
    from socketio_events import register_handlers
    register_handlers(socketio, app.config['REALTIME_NAMESPACE'])

    # Setup logging
    setup_logging(app)

    # Core services, one set per application instance
    from utils.activity import ActivityLog
    from utils.broadcast_manager import BroadcastSessionManager
    from utils.change_publisher import ChangePublisher
    from utils.event_bus import EventBus
    from utils.registry import Registry
    from utils.topic_registry import TopicRegistry

    registry = Registry()
    event_bus = EventBus(socketio,
                         namespace=app.config['REALTIME_NAMESPACE'],
                         global_topic=app.config['GLOBAL_TOPIC'],
                         registry=TopicRegistry())
    activity_log = ActivityLog(event_bus)
    broadcasts = BroadcastSessionManager(event_bus, activity_log, registry,
                                         auto_broadcast=app.config['AUTO_BROADCAST_ON_ASSIGN'])

    app.registry = registry  # type: ignore
    app.event_bus = event_bus  # type: ignore
    app.activity_log = activity_log  # type: ignore
    app.broadcasts = broadcasts  # type: ignore
    app.change_publisher = ChangePublisher(event_bus, activity_log, broadcasts, registry)  # type: ignore

    # Register blueprints
    from routes.content_routes import content_bp
    from routes.tv_routes import tv_bp
    from routes.broadcast_routes import broadcast_bp
    from routes.analytics_routes import analytics_bp

    app.register_blueprint(content_bp, url_prefix='/api')
    app.register_blueprint(tv_bp, url_prefix='/api')
    app.register_blueprint(broadcast_bp, url_prefix='/api')
    app.register_blueprint(analytics_bp, url_prefix='/api')

    # Health check
    @app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'connections': len(event_bus.registry)})

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'message': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'message': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'message': 'Too many requests'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'message': 'Internal server error'}), 500

    # Store limiter in app for use in blueprints
    app.limiter = limiter  # type: ignore

    return app


def setup_logging(app):
    """Configure application logging"""

    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists(app.config['LOG_FOLDER']):
            os.mkdir(app.config['LOG_FOLDER'])

        # Application log handler
        file_handler = RotatingFileHandler(
            app.config['APP_LOG_FILE'],
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('CastBoard startup')


def main():
    """Create tables if needed and serve the API and real-time channel"""
    app = create_app()

    with app.app_context():
        db.create_all()

    socketio.run(
        app,
        host=app.config['FLASK_HOST'],
        port=app.config['FLASK_PORT'],
        debug=app.config['DEBUG'],
        allow_unsafe_werkzeug=True
    )


if __name__ == '__main__':
    main()
