from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_socketio import SocketIO
import json
import logging
import os
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
limiter = Limiter(key_func=get_remote_address)
socketio = SocketIO()

API_PREFIX = '/api/v1'
API_VERSION = '1.0.0'

# 5 photos of 10MB each plus the rest of the form
MAX_CONTENT_LENGTH = 55 * 1024 * 1024


def _database_url():
    url = os.getenv('DATABASE_URL', 'sqlite:///commongood.db')
    # Render/Heroku style URLs
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


def _cors_origins():
    origins = os.getenv('CORS_ORIGINS', '*')
    if origins == '*':
        return origins
    return [origin.strip() for origin in origins.split(',') if origin.strip()]


def _env_flag(name, default='false'):
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


def create_app(config_name='development'):
    app = Flask(__name__)

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Config
    app.config['ENV_NAME'] = config_name
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_url()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    # Keep non-ASCII text unescaped in JSON columns so tag search can match it
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'json_serializer': lambda obj: json.dumps(obj, ensure_ascii=False)
    }
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['JWT_EXPIRES_IN'] = int(os.getenv('JWT_EXPIRES_IN', 90 * 24 * 3600))
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.config['RATELIMIT_STORAGE_URI'] = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    app.config['RATELIMIT_HEADERS_ENABLED'] = True
    app.config['GEOCODING_ENABLED'] = _env_flag('GEOCODING_ENABLED')
    app.config['GEOCODING_URL'] = os.getenv(
        'GEOCODING_URL', 'https://nominatim.openstreetmap.org/search'
    )
    app.config['GEOCODING_USER_AGENT'] = os.getenv('GEOCODING_USER_AGENT', 'commongood-api/1.0')

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
        app.config['RATELIMIT_ENABLED'] = False
        app.config['GEOCODING_ENABLED'] = False
    elif config_name == 'production':
        app.config['DEBUG'] = False

    # Initialize extensions
    db.init_app(app)
    limiter.init_app(app)
    cors_origins = _cors_origins()
    CORS(app, resources={r'/api/*': {'origins': cors_origins}})
    socketio.init_app(
        app,
        cors_allowed_origins=cors_origins,
        async_mode='threading'
    )

    from commongood.utils.errors import register_error_handlers
    register_error_handlers(app)

    # Create tables with error handling
    with app.app_context():
        from commongood import models  # noqa: F401 (registers tables)
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning(f"Could not create database tables: {e}")

    # Register routes
    from commongood.routes import register_routes
    register_routes(app)

    from commongood.socket_events import register_socket_events
    register_socket_events(socketio)

    # Health check
    @app.route('/health', methods=['GET'])
    @app.route('/api/health', methods=['GET'])
    @limiter.exempt
    def health():
        return {'status': 'ok'}, 200

    @app.route(API_PREFIX, methods=['GET'])
    def welcome():
        return jsonify({
            'status': 'success',
            'message': 'Welcome to the CommonGood API!',
            'data': {
                'version': API_VERSION,
                'docs': '/api-docs'
            }
        }), 200

    return app
