# app.py
"""
Flask Application Factory for the Digital Indian site backend

The factory wires together:
- Contact form session tokens and submission mailing
- FAQ chatbot with Gemini fallback
- Admin login and JWT-protected blog management
- JSON file stores for blog posts and newsletter subscribers
- Deferred subscriber notifications via Celery
- Logging, JSON error handling, rate limiting, CORS and security headers
"""

import os
import logging
import logging.handlers
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from api.auth import auth_bp
from api.blogs import blogs_bp
from api.chat import chat_bp
from api.contact import contact_bp
from api.subscribers import subscribers_bp
from config.settings import CONFIGS
from core.admin_auth import AdminSessionManager
from core.blog_store import BlogStore
from core.errors import SiteError, StoreError
from core.json_store import JsonFileStore
from core.mailer import Mailer
from core.session_tokens import TokenRegistry
from core.subscriber_store import SubscriberStore
from middleware.security import limiter, security_headers
from services.chatbot import ChatbotResponder, GeminiClient
from services.contact import ContactService
from tasks.notifications import init_celery


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    This setup provides:
    - A stderr stream handler on the root logger, so module loggers share it
    - An optional rotating file handler when LOG_FILE is set
    - Quieter third-party loggers outside debug mode
    """
    formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Repeated factory calls (tests) must not stack handlers
    if not any(getattr(h, '_site_handler', False) for h in root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler._site_handler = True
        root.addHandler(stream_handler)

        log_file = app.config.get('LOG_FILE')
        if log_file:
            Path(log_file).parent.mkdir(exist_ok=True, parents=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler._site_handler = True
            root.addHandler(file_handler)

    app.logger.setLevel(log_level)

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)


def init_services(app: Flask) -> None:
    """
    Build the stores and collaborators and attach them to the app
    """
    data_dir = Path(app.config['DATA_DIR'])
    upload_folder = app.config.get('UPLOAD_FOLDER') or str(data_dir / 'uploads')
    app.config['UPLOAD_FOLDER'] = upload_folder

    app.token_registry = TokenRegistry()
    app.blog_store = BlogStore(JsonFileStore(data_dir / app.config['BLOGS_FILENAME']))
    app.subscriber_store = SubscriberStore(JsonFileStore(data_dir / app.config['SUBSCRIBERS_FILENAME']))
    app.mailer = Mailer.from_config(app.config)

    app.admin_sessions = AdminSessionManager(
        username=app.config.get('ADMIN_USERNAME'),
        password=app.config.get('ADMIN_PASSWORD'),
        secret=app.config['JWT_SECRET'],
        lifetime=timedelta(hours=app.config['ADMIN_SESSION_HOURS']),
        password_hash=app.config.get('ADMIN_PASSWORD_HASH'),
    )

    app.chatbot = ChatbotResponder(GeminiClient(
        api_key=app.config.get('GEMINI_API_KEY'),
        model=app.config['GEMINI_MODEL'],
        timeout=app.config['GEMINI_TIMEOUT'],
    ))

    app.contact_service = ContactService(
        tokens=app.token_registry,
        mailer=app.mailer,
        recipient=app.config['CONTACT_RECIPIENT'],
        upload_folder=upload_folder,
    )

    app.logger.info(f"Data directory: {data_dir}")


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints under /api
    """
    for blueprint in (contact_bp, chat_bp, auth_bp, blogs_bp, subscribers_bp):
        app.register_blueprint(blueprint, url_prefix='/api')

    app.logger.info("Application blueprints registered")


def configure_error_handlers(app: Flask) -> None:
    """
    Render every error as a JSON body
    """
    @app.errorhandler(SiteError)
    def handle_site_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__} on {request.method} {request.path}: {error.message}")
        elif error.status_code in (401, 403):
            app.logger.warning(f"{error.status_code} on {request.path} from {request.remote_addr}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 429:
            app.logger.warning(f"Rate limit exceeded for {request.remote_addr} on {request.path}")
        return jsonify({
            'success': False,
            'message': error.description,
            'status_code': error.code
        }), error.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'message': 'Internal server error.'
        }), 500


def configure_health_checks(app: Flask) -> None:
    """
    Health check endpoint for monitoring and load balancing
    """
    @app.route('/health')
    def health_check():
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'components': {}
        }

        stores = {'blogs': app.blog_store.store, 'subscribers': app.subscriber_store.store}
        for name, store in stores.items():
            try:
                store.get()
                health_status['components'][name] = 'healthy'
            except StoreError:
                health_status['components'][name] = 'unreadable'
                health_status['status'] = 'unhealthy'

        status_code = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), status_code


def configure_request_middleware(app: Flask) -> None:
    """
    CORS on the API plus security headers on every response
    """
    origins = app.config.get('CORS_ORIGINS', '*')
    if isinstance(origins, str) and origins != '*':
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]

    CORS(app,
         resources={r"/api/*": {"origins": origins}},
         allow_headers=['Content-Type', 'Authorization'])

    app.after_request(security_headers)


def create_app(config_name: Optional[str] = None,
               config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        config_overrides: Extra settings applied after the environment class

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(CONFIGS.get(config_name, CONFIGS['production']))
    if config_overrides:
        app.config.update(config_overrides)

    # Configure proxy handling for production deployment behind nginx
    if config_name == 'production':
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    setup_logging(app)
    app.logger.info(f"Starting site backend in {config_name} mode")

    init_services(app)
    app.celery = init_celery(app)
    limiter.init_app(app)

    register_blueprints(app)
    configure_error_handlers(app)
    configure_health_checks(app)
    configure_request_middleware(app)

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    # Development server
    app = create_app(os.environ.get('FLASK_ENV', 'development'))
    app.mailer.verify()
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=app.debug)
