"""
Application factory for the My Wealth finance tracker API.
"""
import os
import sqlite3

from flask import Flask
from sqlalchemy import event
from sqlalchemy.engine import Engine

from activity import activity_bp
from auth import init_auth
from auth_routes import auth_bp
from budgets import budgets_bp
from categories import categories_bp
from commands import register_commands
from config import BASE_DIR, INSTANCE_PATH, get_config
from errors import register_error_handlers
from extensions import csrf, db
from health import health_bp
from logging_config import configure_logging
from mail import init_mail
from reports import reports_bp
from security import init_security
from stocks import stocks_bp
from transactions import transactions_bp
from user_routes import user_bp

BLUEPRINTS = (
    health_bp,
    auth_bp,
    user_bp,
    transactions_bp,
    categories_bp,
    budgets_bp,
    stocks_bp,
    reports_bp,
    activity_bp,
)


@event.listens_for(Engine, 'connect')
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # Needed for ON DELETE CASCADE / SET NULL on SQLite
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def register_template_filters(app):
    # Custom Jinja2 filter for amounts in emails
    @app.template_filter('money')
    def money_filter(value):
        """Format an amount in rupees with comma separators (2 decimal places)"""
        try:
            return '₹{:,.2f}'.format(float(value))
        except (ValueError, TypeError):
            return value


def create_app(config_name=None, test_config=None):
    app = Flask(
        __name__,
        instance_path=INSTANCE_PATH,
        template_folder=os.path.join(BASE_DIR, 'templates'),
    )

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if test_config:
        app.config.update(test_config)
    config_class.init_app(app)

    # Set up instance path for SQLite and other app data
    os.makedirs(app.instance_path, exist_ok=True)

    configure_logging(app)
    db.init_app(app)
    csrf.init_app(app)

    # Initialize security features
    init_security(app)
    init_auth(app)
    init_mail(app)
    register_error_handlers(app)
    register_template_filters(app)

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
    register_commands(app)

    with app.app_context():
        db.create_all()

    app.logger.info('My Wealth API started with %s', config_class.__name__)
    return app
