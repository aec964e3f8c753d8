"""
Category endpoints plus the default set every new account starts with.
"""
import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from activity_logger import ActivityActions, log_activity
from auth import current_user, login_required
from errors import BadRequestError, NotFoundError
from extensions import db
from models import Category, Transaction, User
from validations import CategoryForm, parse_json_form

logger = logging.getLogger(__name__)

categories_bp = Blueprint('categories', __name__)

DEFAULT_CATEGORIES = {
    'Income': ['Salary', 'Freelancing', 'Investment Returns', 'Rental Income', 'Business'],
    'Expense': ['Entertainment', 'Groceries', 'Healthcare', 'Food', 'Rent', 'Transportation',
                'Utilities', 'Insurance', 'Investment Out', 'Education', 'Travel'],
    'Investment': ['Stocks', 'Mutual Funds', 'Real Estate', 'Crypto', 'Gold', 'Bonds',
                   'Fixed Deposits', 'PPF'],
}

# Transactions filed under these were sometimes saved with the wrong type
INVESTMENT_CATEGORY_NAMES = ('Mutual Funds', 'Stocks', 'Fixed Deposit', 'Fixed Deposits',
                             'Real Estate', 'Gold', 'Crypto', 'Bonds', 'PPF')


def seed_default_categories(user_id):
    """Create any missing default categories for ``user_id``; returns how many were added"""
    existing = {(c.category_group, c.name) for c in Category.query.filter_by(user_id=user_id)}
    added = 0
    for group, names in DEFAULT_CATEGORIES.items():
        for name in names:
            if (group, name) in existing:
                continue
            db.session.add(Category(user_id=user_id, name=name, category_group=group, is_default=True))
            added += 1
    if added:
        db.session.commit()
        logger.info('Seeded %d default categories for user %s', added, user_id)
    return added


def migrate_user_categories(user_id):
    """Add Fixed Deposits and rename the old Income 'Investments' category; returns (added, renamed)"""
    added = renamed = 0
    if not Category.query.filter_by(user_id=user_id, name='Fixed Deposits', category_group='Investment').first():
        db.session.add(Category(user_id=user_id, name='Fixed Deposits', category_group='Investment', is_default=True))
        added = 1

    old = Category.query.filter_by(user_id=user_id, name='Investments', category_group='Income').first()
    if old is not None:
        taken = Category.query.filter_by(user_id=user_id, name='Investment Returns', category_group='Income').first()
        if taken is None:
            old.name = 'Investment Returns'
            renamed = 1
    db.session.commit()
    return added, renamed


def migrate_categories():
    stats = {'totalUsers': 0, 'fixedDepositsAdded': 0, 'investmentsRenamed': 0, 'errors': 0}
    errors = []
    for (user_id,) in db.session.query(User.id).all():
        stats['totalUsers'] += 1
        try:
            added, renamed = migrate_user_categories(user_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Category migration failed for user %s: %s', user_id, e)
            errors.append(f'User {user_id}: {e}')
            continue
        stats['fixedDepositsAdded'] += added
        stats['investmentsRenamed'] += renamed
    stats['errors'] = len(errors)
    return stats, errors


def fix_investment_types():
    """Re-type transactions filed under an investment category; returns the number updated"""
    count = (Transaction.query
             .filter(Transaction.category.in_(INVESTMENT_CATEGORY_NAMES), Transaction.type != 'investment')
             .update({'type': 'investment', 'category_group': 'Investment'}, synchronize_session=False))
    db.session.commit()
    return count


def ordered_categories(user_id, category_group=None):
    query = Category.query.filter_by(user_id=user_id)
    if category_group:
        query = query.filter_by(category_group=category_group)
    return query.order_by(Category.is_default.desc(), Category.name.asc()).all()


@categories_bp.route('/api/categories')
@login_required
def list_categories():
    user = current_user()
    if Category.query.filter_by(user_id=user.id).count() == 0:
        seed_default_categories(user.id)
    categories = ordered_categories(user.id, request.args.get('categoryGroup'))
    return jsonify({'categories': [c.to_dict() for c in categories]})


@categories_bp.route('/api/categories', methods=['POST'])
@login_required
def create_category():
    user = current_user()
    form = parse_json_form(CategoryForm, detailed=False)
    name = form.name.data.strip()
    group = form.categoryGroup.data

    if Category.query.filter_by(user_id=user.id, category_group=group, name=name).first():
        raise BadRequestError('Category already exists')

    category = Category(user_id=user.id, name=name, category_group=group, is_default=False)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise BadRequestError('Category already exists')

    log_activity(user.id, ActivityActions.CATEGORY_ADDED, f'Added category "{name}" to {group}', 'success',
                 {'categoryId': category.id, 'categoryGroup': group})
    return jsonify({'category': category.to_dict()}), 201


@categories_bp.route('/api/categories/<int:category_id>', methods=['DELETE'])
@login_required
def delete_category(category_id):
    user = current_user()
    category = Category.query.filter_by(id=category_id, user_id=user.id).first()
    if category is None:
        raise NotFoundError('Category not found')
    if category.is_default:
        raise BadRequestError('Cannot delete default categories')
    if Transaction.query.filter_by(user_id=user.id, category=category.name).count() > 0:
        raise BadRequestError('Cannot delete category that is in use by transactions')

    db.session.delete(category)
    db.session.commit()
    return jsonify({'message': 'Category deleted successfully'})


@categories_bp.route('/api/admin/migrate-categories')
@login_required
def run_category_migration():
    stats, errors = migrate_categories()
    payload = {'success': True, 'message': 'Migration completed successfully', 'stats': stats}
    if errors:
        payload['errors'] = errors
    return jsonify(payload)
