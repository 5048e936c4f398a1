# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import secrets
import time
import uuid
from datetime import timedelta
from typing import Any, Mapping, Optional

from flask import Flask, request, g

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
SECRET_KEY_FILE = os.path.join(BASE_DIR, '..', '.secret_key')


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


def _secret_key() -> str:
    """SECRET_KEY from the environment, else a key persisted next to the package."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key
    if os.path.exists(SECRET_KEY_FILE):
        with open(SECRET_KEY_FILE, 'r') as f:
            return f.read().strip()
    new_key = secrets.token_hex(32)
    with open(SECRET_KEY_FILE, 'w') as f:
        f.write(new_key)
    return new_key


def _configure(app: Flask, overrides: Mapping[str, Any]):
    app.config.update(
        JSON_SORT_KEYS=False,
        SECRET_KEY=overrides.get('SECRET_KEY') or _secret_key(),
        # Cookies: HttpOnly always, Secure only when deployed behind TLS
        SESSION_COOKIE_SECURE=_env_bool('SESSION_COOKIE_SECURE'),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=timedelta(days=30),
        SESSION_REFRESH_EACH_REQUEST=True,
        HOST=os.environ.get('FLASK_HOST', '127.0.0.1'),
        PORT=int(os.environ.get('FLASK_PORT', '5000')),
        DEBUG=_env_bool('FLASK_DEBUG'),
    )
    app.config.update(overrides)


def _init_db(app: Flask):
    from .database import init_database, reset_engine

    # A URL passed in config wins over the environment
    if app.config.get('DATABASE_URL'):
        os.environ['DATABASE_URL'] = app.config['DATABASE_URL']
        reset_engine()
    init_database()


def _register_request_hooks(app: Flask):
    from .log import debug_log_event
    from .csrf import ensure_csrf_token, get_csrf_token

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def debug_request_log(response):
        start = getattr(g, 'request_start', None)
        user = getattr(g, 'current_user', None)
        debug_log_event({
            'event': 'request',
            'request_id': getattr(g, 'request_id', None),
            'method': request.method,
            'path': request.path,
            'query': request.query_string.decode('utf-8', errors='ignore'),
            'status': response.status_code,
            'duration_ms': int((time.time() - start) * 1000) if start else None,
            'user_id': str(user.id) if user is not None and getattr(user, 'is_authenticated', False) else None,
        })
        return response

    @app.teardown_request
    def debug_exception_log(error=None):
        if error is not None:
            debug_log_event({
                'event': 'exception',
                'request_id': getattr(g, 'request_id', None),
                'path': request.path,
                'error_type': error.__class__.__name__,
                'error': str(error),
            })

    app.before_request(ensure_csrf_token)
    app.add_url_rule('/api/csrf-token', 'csrf_token', get_csrf_token)


def _register_blueprints(app: Flask):
    from .routes.main_api import main_bp
    from .routes.auth_api import auth_bp
    from .routes.search_api import search_bp
    from .routes.collections_api import collections_bp
    from .routes.media_api import media_bp
    from .routes.tmdb_api import tmdb_bp

    for blueprint in (main_bp, auth_bp, search_bp, collections_bp, media_bp, tmdb_bp):
        app.register_blueprint(blueprint)


def create_app(config: Optional[Mapping[str, Any]] = None):
    """
    Build the MediaHub Flask app.

    Args:
        config: Overrides applied on top of the environment-derived config
            (tests pass DATABASE_URL, SECRET_KEY, DISABLE_RATE_LIMITING...)
    """
    app = Flask(__name__, instance_relative_config=True)
    _configure(app, dict(config or {}))
    os.makedirs(app.instance_path, exist_ok=True)

    _init_db(app)

    from .log import log
    from .rate_limit import init_rate_limiting
    from .routes.auth_api import init_login_manager

    init_rate_limiting(app)
    init_login_manager(app)
    _register_request_hooks(app)
    _register_blueprints(app)

    log(f"🎬 MediaHub ready on http://{app.config['HOST']}:{app.config['PORT']}")
    if app.config['DEBUG']:
        log("⚠️  Debug mode is ON - do not use in production!")

    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)
