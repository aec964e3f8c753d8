import os

# Server socket
port = int(os.environ.get('PORT', 5000))
bind = f'0.0.0.0:{port}'
wsgi_app = 'wsgi:app'
forwarded_allow_ips = os.environ.get('FORWARDED_ALLOW_IPS', '127.0.0.1')

# Workers block on the database, SMTP and the quote API
workers = int(os.environ.get('WEB_CONCURRENCY', 2))
worker_class = 'sync'

# Logging
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
accesslog = '-'
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(L)ss "%(a)s"'
errorlog = '-'
capture_output = True

# Timeouts; a quote refresh is capped by QUOTE_API_TIMEOUT
timeout = 60
graceful_timeout = 30
keepalive = 5

# Recycle workers
max_requests = 1000
max_requests_jitter = 50

reload = os.environ.get('FLASK_ENV') == 'development'
