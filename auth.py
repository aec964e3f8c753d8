"""
Password hashing, signed tokens and the cookie-based login guard.

Session tokens are short-lived HS256 JWTs stored in an httpOnly cookie. Every
authenticated request re-issues the cookie (sliding expiration). Email
verification and password reset links carry tokens with a ``purpose`` claim
so one kind can never stand in for another.
"""
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import bcrypt
from flask import current_app, g, request
from jose import JWTError, jwt

from errors import AuthenticationError
from extensions import db
from models import User

logger = logging.getLogger(__name__)

PURPOSE_SESSION = 'session'
PURPOSE_VERIFY = 'verify'
PURPOSE_RESET = 'reset'


def hash_password(password):
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def check_password(password, password_hash):
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash stored for this user
        return False


def _ttl_for(purpose):
    config = current_app.config
    if purpose == PURPOSE_VERIFY:
        return config['VERIFY_TOKEN_TTL_SECONDS']
    if purpose == PURPOSE_RESET:
        return config['RESET_TOKEN_TTL_SECONDS']
    return config['TOKEN_TTL_SECONDS']


def generate_token(user_id, purpose=PURPOSE_SESSION):
    now = datetime.now(timezone.utc)
    claims = {
        'userId': user_id,
        'purpose': purpose,
        'iat': now,
        'exp': now + timedelta(seconds=_ttl_for(purpose)),
    }
    return jwt.encode(claims, current_app.config['JWT_SECRET'], algorithm=current_app.config['JWT_ALGORITHM'])


def verify_token(token, purpose=PURPOSE_SESSION):
    """Return the token claims, or None when the token is invalid, expired or for another purpose"""
    if not token:
        return None
    try:
        claims = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=[current_app.config['JWT_ALGORITHM']])
    except JWTError as e:
        logger.debug('Rejected %s token: %s', purpose, e)
        return None
    if claims.get('purpose') != purpose or claims.get('userId') is None:
        return None
    return claims


def set_token_cookie(response, token):
    config = current_app.config
    response.set_cookie(
        config['TOKEN_COOKIE_NAME'],
        token,
        max_age=config['TOKEN_TTL_SECONDS'],
        httponly=True,
        secure=config['SESSION_COOKIE_SECURE'],
        samesite='Lax',
        path='/',
    )
    return response


def clear_token_cookie(response):
    config = current_app.config
    response.set_cookie(
        config['TOKEN_COOKIE_NAME'],
        '',
        max_age=0,
        httponly=True,
        secure=config['SESSION_COOKIE_SECURE'],
        samesite='Lax',
        path='/',
    )
    g.clear_token = True
    return response


def load_current_user():
    """Resolve the cookie token to a User, or None"""
    token = request.cookies.get(current_app.config['TOKEN_COOKIE_NAME'])
    claims = verify_token(token)
    if not claims:
        return None
    return db.session.get(User, claims['userId'])


def current_user():
    return g.get('current_user')


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request.cookies.get(current_app.config['TOKEN_COOKIE_NAME'])
        if not token:
            raise AuthenticationError()
        claims = verify_token(token)
        if not claims:
            raise AuthenticationError()
        user = db.session.get(User, claims['userId'])
        if user is None:
            raise AuthenticationError('Invalid session')
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def refresh_session_cookie(response):
    """Re-issue the session token for authenticated requests (sliding expiration)"""
    user = g.get('current_user')
    if user is None or g.get('clear_token') or response.status_code == 401:
        return response
    return set_token_cookie(response, generate_token(user.id))


def init_auth(app):
    app.after_request(refresh_session_cookie)
