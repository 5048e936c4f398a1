"""
Authentication API Blueprint

Session-based accounts (Flask-Login). Collections are per user, so every
collection endpoint needs a session from here.

  POST /api/auth/register   email, password, display_name?
  POST /api/auth/login      email, password, remember?
  POST /api/auth/logout
  GET  /api/auth/me
  POST /api/auth/update     display_name?, avatar_url?, new_password + current_password
"""

from flask import Blueprint, jsonify, g
from flask_login import LoginManager, login_user, logout_user, login_required, current_user

from mediahub_app.csrf import csrf_protect, regenerate_csrf_token
from mediahub_app.database import get_db_session
from mediahub_app.log import log
from mediahub_app.models import User
from mediahub_app.rate_limit import limiter
from mediahub_app.services import accounts
from mediahub_app.services.errors import ServiceError
from .validators import error_response, json_body, service_error_response

auth_bp = Blueprint('auth_api', __name__, url_prefix='/api/auth')
login_manager = LoginManager()

LOGIN_RATE_LIMIT = "5 per minute"
REGISTER_RATE_LIMIT = "3 per hour"


@login_manager.user_loader
def load_user(user_id):
    with get_db_session() as db:
        return db.get(User, str(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return error_response('Authentication required', code='unauthorized', status=401)


def init_login_manager(app):
    """Attach Flask-Login; API clients get JSON 401s, never redirects."""
    login_manager.init_app(app)
    login_manager.login_view = None

    @app.before_request
    def set_current_user():
        g.current_user = current_user


def current_user_id():
    """Id of the logged-in user, or None for anonymous requests."""
    if current_user and current_user.is_authenticated:
        return str(current_user.id)
    return None


def _signed_in(user: User, remember: bool = False):
    login_user(user, remember=remember)
    # New session identity gets a new token
    regenerate_csrf_token()
    return jsonify({'status': 'ok', 'user': user.to_dict()})


@auth_bp.route('/register', methods=['POST'])
@limiter.limit(REGISTER_RATE_LIMIT)
@csrf_protect
def register():
    data = json_body()

    try:
        with get_db_session() as db:
            user = accounts.register_user(
                db, data.get('email'), data.get('password'), data.get('display_name')
            )
    except ServiceError as e:
        return service_error_response(e)

    log(f"👤 New user registered: {user.email}")
    return _signed_in(user)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(LOGIN_RATE_LIMIT)
@csrf_protect
def login():
    data = json_body()
    if not data.get('email') or not data.get('password'):
        return error_response('Email and password required')

    with get_db_session() as db:
        user = accounts.authenticate(db, data['email'], data['password'])

    if user is None:
        return error_response('Invalid credentials', code='unauthorized', status=401)

    log(f"🔑 User logged in: {user.email}")
    return _signed_in(user, remember=bool(data.get('remember', False)))


@auth_bp.route('/logout', methods=['POST'])
@login_required
@csrf_protect
def logout():
    logout_user()
    return jsonify({'status': 'ok', 'message': 'Logged out'})


@auth_bp.route('/me')
def me():
    if current_user.is_authenticated:
        return jsonify({'authenticated': True, 'user': current_user.to_dict()})
    return jsonify({'authenticated': False})


@auth_bp.route('/update', methods=['POST'])
@login_required
@csrf_protect
def update_profile():
    data = json_body()

    try:
        with get_db_session() as db:
            user = accounts.update_profile(
                db,
                current_user_id(),
                display_name=data.get('display_name'),
                avatar_url=data.get('avatar_url'),
                new_password=data.get('new_password'),
                current_password=data.get('current_password'),
            )
    except ServiceError as e:
        return service_error_response(e)

    return jsonify({'status': 'ok', 'user': user.to_dict()})
