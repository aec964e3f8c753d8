def add_security_headers(response):
    """Add security headers to response"""
    # The API only ever returns JSON (and redirects), so nothing may be embedded or executed
    response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"

    # Other security headers
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'same-origin'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'

    # Financial data must never be cached by browsers or proxies
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'

    return response


def add_hsts_header(response):
    response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def init_security(app):
    """Initialize security features for the Flask app"""
    # Enable HSTS
    if app.config.get('PREFERRED_URL_SCHEME') == 'https':
        app.after_request(add_hsts_header)

    # Add security headers to all responses
    app.after_request(add_security_headers)
