"""Logging setup for the application.

``configure_logging(app)`` attaches one ``StreamHandler`` to the root logger the
first time it runs. Modules only call ``logging.getLogger(__name__)``; under
gunicorn the stream ends up in the error log (see ``gunicorn_config.py``).
"""
import logging
import sys

from flask.logging import default_handler

_CONFIGURED = False
LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def parse_level(level):
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(app, stream=sys.stderr):
    global _CONFIGURED
    level = parse_level(app.config.get('LOG_LEVEL'))
    root = logging.getLogger()
    root.setLevel(level)
    app.logger.setLevel(level)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # Flask's own handler would print app.logger records a second time
    app.logger.propagate = True
    app.logger.removeHandler(default_handler)

    _CONFIGURED = True
