"""
Maintenance commands, run with ``flask --app wsgi <command>``.
"""
from categories import fix_investment_types, migrate_categories
from extensions import db


def register_commands(app):
    @app.cli.command('initdb')
    def initdb():
        db.create_all()
        print('Database initialized!')

    @app.cli.command('migrate-categories')
    def migrate_categories_command():
        stats, errors = migrate_categories()
        print(f"Users processed: {stats['totalUsers']}")
        print(f"Fixed Deposits added: {stats['fixedDepositsAdded']}")
        print(f"Investments renamed: {stats['investmentsRenamed']}")
        for error in errors:
            print(f'  {error}')

    @app.cli.command('fix-investment-types')
    def fix_investment_types_command():
        count = fix_investment_types()
        print(f"Updated {count} transactions to type 'investment'.")
