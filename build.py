#!/usr/bin/env python3
"""
Build script for deployment.
This script creates the database tables and brings existing category data up to date.
"""

from app import create_app
from categories import fix_investment_types, migrate_categories
from extensions import db


def initialize_database():
    """Initialize database for production deployment."""
    app = create_app()
    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print("Migrating user categories...")
        stats, errors = migrate_categories()
        print(f"  {stats['fixedDepositsAdded']} Fixed Deposits categories added, "
              f"{stats['investmentsRenamed']} renamed, {len(errors)} errors")

        print("Fixing investment transaction types...")
        print(f"  {fix_investment_types()} transactions updated")

        print("Database initialization completed successfully!")


if __name__ == "__main__":
    initialize_database()
