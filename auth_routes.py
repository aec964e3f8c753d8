"""
Account endpoints: signup with email verification, login/logout, password reset.
"""
import logging
from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify, make_response, redirect, request, url_for
from flask_wtf.csrf import generate_csrf

from activity_logger import ActivityActions, log_activity
from auth import (
    PURPOSE_RESET,
    PURPOSE_VERIFY,
    check_password,
    clear_token_cookie,
    current_user,
    generate_token,
    hash_password,
    load_current_user,
    login_required,
    set_token_cookie,
    verify_token,
)
from categories import seed_default_categories
from errors import AuthenticationError, BadRequestError, NotFoundError
from extensions import db
from mail import MailDeliveryError, send_password_reset_email, send_verification_email
from models import User
from validations import LoginForm, SignupForm, get_json_body, parse_json_form

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

CALLBACK_FAILED = '/login?error=auth_callback_failed'


def normalize_email(email):
    return (email or '').strip().lower()


def find_user_by_email(email):
    return User.query.filter_by(email=normalize_email(email)).first()


def verification_link(user):
    return url_for('auth.callback', token=generate_token(user.id, PURPOSE_VERIFY), _external=True)


def reset_link(user):
    query = urlencode({'token': generate_token(user.id, PURPOSE_RESET)})
    return f"{current_app.config['APP_BASE_URL'].rstrip('/')}/reset-password?{query}"


def safe_next(target):
    # Only same-site paths; anything else lands on the dashboard
    if not target or not target.startswith('/') or target.startswith('//'):
        return '/dashboard'
    return target


@auth_bp.route('/csrf')
def csrf_token():
    return jsonify({'csrfToken': generate_csrf()})


@auth_bp.route('/signup', methods=['POST'])
def signup():
    form = parse_json_form(SignupForm, detailed=False)
    email = normalize_email(form.email.data)
    if find_user_by_email(email):
        raise BadRequestError('Email already registered')

    user = User(
        email=email,
        full_name=form.fullName.data.strip(),
        password_hash=hash_password(form.password.data),
        email_verified=False,
    )
    db.session.add(user)
    db.session.commit()
    logger.info('User created: %s', user.id)

    seed_default_categories(user.id)

    try:
        send_verification_email(user, verification_link(user))
    except MailDeliveryError as e:
        logger.warning('Signup email failed for %s: %s', email, e.message)

    return jsonify({
        'message': 'Signup successful! Please check your email to verify your account.',
        'user': {'id': user.id, 'email': user.email, 'fullName': user.full_name},
    }), 201


@auth_bp.route('/callback')
def callback():
    claims = verify_token(request.args.get('token'), PURPOSE_VERIFY)
    if not claims:
        return redirect(CALLBACK_FAILED)
    user = db.session.get(User, claims['userId'])
    if user is None:
        return redirect(CALLBACK_FAILED)

    user.email_verified = True
    db.session.commit()
    logger.info('Email verified for user %s', user.id)

    response = redirect(safe_next(request.args.get('next')))
    return set_token_cookie(response, generate_token(user.id))


@auth_bp.route('/resend-verification', methods=['POST'])
def resend_verification():
    email = get_json_body().get('email')
    if not email:
        raise BadRequestError('Email is required')
    user = find_user_by_email(email)
    if user is None:
        raise NotFoundError('User not found')

    send_verification_email(user, verification_link(user))
    return jsonify({'message': 'Verification email sent'})


@auth_bp.route('/login', methods=['POST'])
def login():
    form = parse_json_form(LoginForm)
    user = find_user_by_email(form.email.data)
    if user is None or not check_password(form.password.data, user.password_hash):
        raise AuthenticationError('Invalid email or password')
    if current_app.config['REQUIRE_EMAIL_VERIFICATION'] and not user.email_verified:
        raise AuthenticationError('Please verify your email before logging in')

    log_activity(user.id, ActivityActions.LOGIN, 'Logged in', 'info')

    response = make_response(jsonify({
        'message': 'Login successful',
        'user': {'id': user.id, 'fullName': user.full_name, 'email': user.email},
    }))
    return set_token_cookie(response, generate_token(user.id))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user = load_current_user()
    if user is not None:
        log_activity(user.id, ActivityActions.LOGOUT, 'Logged out', 'info')
    response = make_response(jsonify({'message': 'Logged out successfully'}))
    return clear_token_cookie(response)


@auth_bp.route('/me')
@login_required
def me():
    user = current_user()
    return jsonify({'user': {
        'id': user.id,
        'email': user.email,
        'fullName': user.full_name,
        'createdAt': user.to_dict()['createdAt'],
    }})


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    email = get_json_body().get('email')
    if not email:
        raise BadRequestError('Email is required')
    user = find_user_by_email(email)
    if user is None:
        raise BadRequestError('User not found')

    send_password_reset_email(user, reset_link(user))
    return jsonify({'message': 'Password reset email sent'})


@auth_bp.route('/update-password', methods=['POST'])
def update_password():
    """Set a new password using either a reset token or the current session"""
    payload = get_json_body()
    password = payload.get('password')
    if not isinstance(password, str) or len(password) < 6:
        raise BadRequestError('Password must be at least 6 characters')

    reset_token = payload.get('token')
    if reset_token:
        claims = verify_token(reset_token, PURPOSE_RESET)
        if not claims:
            raise BadRequestError('Reset link is invalid or has expired')
        user = db.session.get(User, claims['userId'])
    else:
        user = load_current_user()
    if user is None:
        raise AuthenticationError()

    user.password_hash = hash_password(password)
    db.session.commit()
    logger.info('Password updated for user %s', user.id)
    return jsonify({'message': 'Password updated successfully'})
