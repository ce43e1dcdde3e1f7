"""Authentication routes: signup, login and the current user."""

import logging

from flask import Blueprint, g

from commongood import db, limiter
from commongood.models import User
from commongood.utils.auth import create_token, token_required
from commongood.utils.errors import AppError
from commongood.utils.request_data import get_request_data
from commongood.utils.responses import success
from commongood.utils.validators import validate_signup, raise_for_errors

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _token_response(user, status_code):
    return success({'user': user.to_dict(private=True)}, status_code, token=create_token(user))


def _normalize_email(email):
    return email.strip().lower() if isinstance(email, str) else email


@auth_bp.route('/signup', methods=['POST'])
@limiter.limit("5 per minute")
def signup():
    """Register a new user account."""
    data = get_request_data()

    if not all(data.get(k) for k in ('name', 'email', 'password')):
        raise AppError('Please provide name, email, and password!', 400)

    raise_for_errors(validate_signup(data))

    email = _normalize_email(data['email'])
    if User.query.filter_by(email=email).first():
        raise AppError('Duplicate field value: email. Please use another value!', 400)

    user = User(name=data['name'].strip(), email=email)
    user.set_password(data['password'])

    db.session.add(user)
    db.session.commit()

    logger.info(f'New user signed up: {user.id}')
    return _token_response(user, 201)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Login with email and password."""
    data = get_request_data()

    email = data.get('email')
    password = data.get('password')
    if not email or not password:
        raise AppError('Please provide email and password!', 400)

    user = User.query.filter_by(email=_normalize_email(email)).first()
    if not user or not isinstance(password, str) or not user.check_password(password):
        raise AppError('Incorrect email or password.', 401)

    if not user.is_active:
        raise AppError('This account has been deactivated.', 403)

    return _token_response(user, 200)


@auth_bp.route('/me', methods=['GET'])
@token_required
def get_me():
    """Get the authenticated user's own profile."""
    return success({'user': g.current_user.to_dict(private=True)})
