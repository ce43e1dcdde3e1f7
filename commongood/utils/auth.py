"""Shared authentication utilities.

This module issues JWTs and provides the decorators that protect routes.
Both decorators resolve the token owner and store the full User object in
``g.current_user``.
"""

from datetime import datetime, timedelta
from functools import wraps
from flask import request, current_app, g
import jwt

from commongood.utils.errors import AppError

ALGORITHM = 'HS256'


def _get_secret_key():
    """Get JWT secret from Flask app config (single source of truth)."""
    return current_app.config['JWT_SECRET_KEY']


def create_token(user):
    """Sign a token for ``user`` valid for ``JWT_EXPIRES_IN`` seconds."""
    now = datetime.utcnow()
    payload = {
        'user_id': user.id,
        'iat': now,
        'exp': now + timedelta(seconds=current_app.config['JWT_EXPIRES_IN'])
    }
    return jwt.encode(payload, _get_secret_key(), algorithm=ALGORITHM)


def decode_token(token):
    """Decode a token, raising AppError(401) when it is invalid or expired."""
    if token and token.startswith('Bearer '):
        token = token.split(' ', 1)[1]
    try:
        return jwt.decode(token, _get_secret_key(), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AppError('Your token has expired! Please log in again.', 401)
    except jwt.InvalidTokenError:
        raise AppError('Invalid token. Please log in again.', 401)


def get_bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header.split(' ', 1)[1].strip() or None
    return None


def authenticate(token):
    """Return the active User owning ``token`` or raise AppError(401)."""
    from commongood import db
    from commongood.models import User

    payload = decode_token(token)
    user = db.session.get(User, payload.get('user_id'))
    if not user or not user.is_active:
        raise AppError('The user belonging to this token does no longer exist.', 401)

    if user.changed_password_after(payload.get('iat')):
        raise AppError('User recently changed password! Please log in again.', 401)

    return user


def token_required(f):
    """
    Decorator to require valid JWT token, setting g.current_user.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route():
            user = g.current_user
            return jsonify({'user_id': user.id})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            raise AppError('You are not logged in! Please log in to get access.', 401)

        g.current_user = authenticate(token)
        return f(*args, **kwargs)
    return decorated


def token_optional(f):
    """
    Decorator for optional JWT authentication, setting g.current_user.

    Sets g.current_user to the User object if a valid token is sent,
    None otherwise.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        g.current_user = None
        token = get_bearer_token()

        if token:
            try:
                g.current_user = authenticate(token)
            except AppError:
                g.current_user = None

        return f(*args, **kwargs)
    return decorated
