from auth import PURPOSE_VERIFY, generate_token, verify_token
from extensions import db
from mail import get_outbox
from models import Category, User
from tests.conftest import PASSWORD, last_link, link_path, login, mark_verified, signup


def session_cookie_set(response):
    return any(header.startswith('token=') for header in response.headers.getlist('Set-Cookie'))


def test_signup_creates_unverified_user_and_sends_verification(app, client):
    response = signup(client)
    assert response.status_code == 201
    assert response.get_json()['user']['email'] == 'alice@example.com'

    with app.app_context():
        user = User.query.filter_by(email='alice@example.com').one()
        assert user.email_verified is False
        assert user.password_hash != PASSWORD
        assert Category.query.filter_by(user_id=user.id).count() == 24
        outbox = get_outbox()
    assert len(outbox) == 1
    assert outbox[0]['to'] == 'alice@example.com'
    assert '/api/auth/callback?token=' in outbox[0]['text']


def test_signup_rejects_bad_input(client):
    response = signup(client, password='123')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Password must be at least 6 characters'

    response = client.post('/api/auth/signup', json={
        'fullName': 'Alice', 'email': 'alice@example.com', 'password': PASSWORD, 'confirmPassword': 'other1',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == "Passwords don't match"

    response = signup(client, email='not-an-email')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid email address'


def test_signup_rejects_duplicate_email(client):
    assert signup(client).status_code == 201
    response = signup(client, email='Alice@Example.com')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Email already registered'


def test_login_requires_verified_email(client):
    signup(client)
    response = login(client)
    assert response.status_code == 401
    assert 'verify' in response.get_json()['error']


def test_verification_link_logs_in_and_redirects(app, client):
    signup(client)
    response = client.get(link_path(last_link(app)))
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/dashboard')
    assert session_cookie_set(response)

    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['user']['fullName'] == 'Alice Example'
    assert login(client).status_code == 200


def test_callback_honours_local_next_only(app, client):
    signup(client)
    path = link_path(last_link(app))
    response = client.get(path + '&next=/transactions')
    assert response.headers['Location'].endswith('/transactions')

    response = client.get(path + '&next=//evil.example.com')
    assert response.headers['Location'].endswith('/dashboard')


def test_callback_failures_redirect_to_login(app, client):
    response = client.get('/api/auth/callback?token=garbage')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/login?error=auth_callback_failed')

    signup(client)
    with app.test_request_context():
        user_id = User.query.filter_by(email='alice@example.com').one().id
        session_token = generate_token(user_id)
    response = client.get(f'/api/auth/callback?token={session_token}')
    assert response.headers['Location'].endswith('/login?error=auth_callback_failed')


def test_tokens_are_bound_to_their_purpose(app):
    with app.app_context():
        token = generate_token(42, PURPOSE_VERIFY)
        assert verify_token(token, PURPOSE_VERIFY)['userId'] == 42
        assert verify_token(token) is None
        assert verify_token('not-a-token') is None


def test_login_rejects_bad_credentials(app, client):
    signup(client)
    mark_verified(app, 'alice@example.com')
    response = login(client, password='wrong-password')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid email or password'
    assert login(client, email='nobody@example.com').status_code == 401


def test_login_validation_error_has_details(client):
    response = client.post('/api/auth/login', json={'email': 'nope'})
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Validation failed'
    assert 'password' in body['details']


def test_login_sets_http_only_cookie(app, client):
    signup(client)
    mark_verified(app, 'alice@example.com')
    response = login(client)
    assert response.status_code == 200
    assert response.get_json()['user']['email'] == 'alice@example.com'
    cookie = next(h for h in response.headers.getlist('Set-Cookie') if h.startswith('token='))
    assert 'HttpOnly' in cookie
    assert 'Max-Age=600' in cookie


def test_authenticated_requests_refresh_the_session_cookie(auth_client):
    response = auth_client.get('/api/auth/me')
    assert response.status_code == 200
    assert session_cookie_set(response)


def test_me_requires_authentication(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Not authenticated'
    assert not session_cookie_set(response)


def test_logout_clears_session(auth_client):
    response = auth_client.post('/api/auth/logout')
    assert response.status_code == 200
    cookie = next(h for h in response.headers.getlist('Set-Cookie') if h.startswith('token='))
    assert 'Max-Age=0' in cookie
    assert auth_client.get('/api/auth/me').status_code == 401


def test_me_with_deleted_user_is_invalid_session(app, auth_client):
    with app.app_context():
        user = User.query.filter_by(email='alice@example.com').one()
        db.session.delete(user)
        db.session.commit()
    response = auth_client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid session'


def test_resend_verification(app, client):
    signup(client)
    assert client.post('/api/auth/resend-verification', json={}).status_code == 400
    assert client.post('/api/auth/resend-verification', json={'email': 'x@example.com'}).status_code == 404

    response = client.post('/api/auth/resend-verification', json={'email': 'alice@example.com'})
    assert response.status_code == 200
    with app.app_context():
        assert len(get_outbox()) == 2


def test_forgot_and_reset_password(app, client):
    signup(client)
    mark_verified(app, 'alice@example.com')

    assert client.post('/api/auth/forgot-password', json={}).status_code == 400
    response = client.post('/api/auth/forgot-password', json={'email': 'ghost@example.com'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'User not found'

    response = client.post('/api/auth/forgot-password', json={'email': 'alice@example.com'})
    assert response.status_code == 200
    link = last_link(app)
    assert link_path(link).split('?')[0] == '/reset-password'
    token = link.split('token=', 1)[1]

    response = client.post('/api/auth/update-password', json={'password': 'brand-new-pass', 'token': token})
    assert response.status_code == 200
    assert login(client).status_code == 401
    assert login(client, password='brand-new-pass').status_code == 200


def test_update_password_validation(app, auth_client, client):
    response = auth_client.post('/api/auth/update-password', json={'password': '123'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Password must be at least 6 characters'

    response = client.post('/api/auth/update-password', json={'password': 'long-enough'})
    assert response.status_code == 401

    response = client.post('/api/auth/update-password', json={'password': 'long-enough', 'token': 'bad'})
    assert response.status_code == 400

    response = auth_client.post('/api/auth/update-password', json={'password': 'long-enough'})
    assert response.status_code == 200


def test_forgot_password_reports_mail_failure(app, client):
    signup(client)
    app.config['MAIL_SUPPRESS_SEND'] = False
    app.config['MAIL_PASSWORD'] = None
    response = client.post('/api/auth/forgot-password', json={'email': 'alice@example.com'})
    assert response.status_code == 500
    assert 'MAIL_PASSWORD' in response.get_json()['error']


def test_signup_survives_mail_failure(app, client):
    app.config['MAIL_SUPPRESS_SEND'] = False
    app.config['MAIL_PASSWORD'] = None
    assert signup(client).status_code == 201


def test_csrf_token_endpoint(client):
    response = client.get('/api/auth/csrf')
    assert response.status_code == 200
    assert response.get_json()['csrfToken']
