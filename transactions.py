"""
Transaction endpoints, including the termination of matured investments.
"""
import logging
import math
from datetime import date, datetime

from flask import Blueprint, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from activity_logger import ActivityActions, log_activity
from auth import current_user, login_required
from errors import BadRequestError, NotFoundError
from extensions import db
from models import STATUS_ACTIVE, STATUS_TERMINATED, Category, Transaction
from validations import TransactionForm, get_json_body, parse_json_form

logger = logging.getLogger(__name__)

transactions_bp = Blueprint('transactions', __name__, url_prefix='/api/transactions')

TERMINABLE_CATEGORIES = ('Fixed Deposits', 'Bonds')

SORT_COLUMNS = {
    'date': Transaction.date,
    'amount': Transaction.amount,
    'type': Transaction.type,
    'category': Transaction.category,
    'createdAt': Transaction.created_at,
}


def parse_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except ValueError:
        raise BadRequestError(f'{name} must be in YYYY-MM-DD format')


def get_owned_transaction(transaction_id, user_id):
    transaction = Transaction.query.filter_by(id=transaction_id, user_id=user_id).first()
    if transaction is None:
        raise NotFoundError('Transaction not found')
    return transaction


def resolve_category_id(category_id, user_id):
    if category_id is None:
        return None
    if Category.query.filter_by(id=category_id, user_id=user_id).first() is None:
        raise NotFoundError('Category not found')
    return category_id


def apply_form(transaction, form, user_id):
    transaction.type = form.type.data
    transaction.category_group = form.categoryGroup.data
    transaction.category = form.category.data
    transaction.sub_category = form.subCategory.data or None
    transaction.amount = form.amount.data
    transaction.date = form.date.data
    transaction.notes = form.notes.data or None
    transaction.category_id = resolve_category_id(form.categoryId.data, user_id)


@transactions_bp.route('')
@login_required
def list_transactions():
    user = current_user()
    query = Transaction.query.filter(Transaction.user_id == user.id)

    tx_type = request.args.get('type')
    if tx_type:
        query = query.filter(Transaction.type == tx_type.lower())

    category = request.args.get('category')
    if category:
        pattern = f'%{category}%'
        query = query.outerjoin(Transaction.category_rel).filter(or_(
            Transaction.category.ilike(pattern),
            Category.name.ilike(pattern),
        ))

    start_date = parse_date_arg('startDate')
    end_date = parse_date_arg('endDate')
    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)

    min_amount = request.args.get('minAmount', type=float)
    max_amount = request.args.get('maxAmount', type=float)
    if min_amount is not None:
        query = query.filter(Transaction.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Transaction.amount <= max_amount)

    description = request.args.get('description')
    if description:
        query = query.filter(Transaction.notes.ilike(f'%{description}%'))

    column = SORT_COLUMNS.get(request.args.get('sortBy', 'date'), Transaction.date)
    ordering = column.asc() if request.args.get('order') == 'asc' else column.desc()

    page = max(request.args.get('page', 1, type=int), 1)
    limit = max(request.args.get('limit', 10, type=int), 1)

    total = query.count()
    transactions = query.order_by(ordering, Transaction.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return jsonify({
        'transactions': [t.to_dict() for t in transactions],
        'pagination': {
            'total': total,
            'pages': math.ceil(total / limit),
            'page': page,
            'limit': limit,
        },
    })


@transactions_bp.route('', methods=['POST'])
@login_required
def create_transaction():
    user = current_user()
    form = parse_json_form(TransactionForm)

    transaction = Transaction(user_id=user.id, status=STATUS_ACTIVE)
    apply_form(transaction, form, user.id)
    db.session.add(transaction)
    db.session.commit()

    log_activity(user.id, ActivityActions.TRANSACTION_ADDED,
                 f'Added {transaction.type} transaction: {transaction.amount} in {transaction.category_name}',
                 'success',
                 {'transactionId': transaction.id, 'amount': transaction.amount,
                  'type': transaction.type, 'category': transaction.category_name})
    return jsonify({'transaction': transaction.to_dict()}), 201


@transactions_bp.route('/<int:transaction_id>', methods=['PUT'])
@login_required
def update_transaction(transaction_id):
    user = current_user()
    transaction = get_owned_transaction(transaction_id, user.id)
    form = parse_json_form(TransactionForm)

    previous = {'amount': transaction.amount, 'type': transaction.type, 'category': transaction.category}
    apply_form(transaction, form, user.id)
    db.session.commit()

    log_activity(user.id, ActivityActions.TRANSACTION_UPDATED,
                 f'Updated {transaction.type} transaction: {transaction.amount} in {transaction.category_name}',
                 'info',
                 {'transactionId': transaction.id, 'amount': transaction.amount, 'type': transaction.type,
                  'category': transaction.category_name, 'previousData': previous})
    return jsonify({'transaction': transaction.to_dict()})


@transactions_bp.route('/<int:transaction_id>', methods=['DELETE'])
@login_required
def delete_transaction(transaction_id):
    user = current_user()
    transaction = get_owned_transaction(transaction_id, user.id)
    details = {'transactionId': transaction.id, 'amount': transaction.amount,
               'type': transaction.type, 'category': transaction.category_name}

    db.session.delete(transaction)
    db.session.commit()

    log_activity(user.id, ActivityActions.TRANSACTION_DELETED,
                 f"Deleted {details['type']} transaction: {details['amount']} from {details['category']}",
                 'warning', details)
    return jsonify({'message': 'Transaction deleted successfully'})


def maturity_income(investment, amount, today):
    return Transaction(
        user_id=investment.user_id,
        type='income',
        category_group='Income',
        category='Investment Returns',
        amount=amount,
        date=today,
        notes=f"Maturity from {investment.category}: {investment.notes or 'Investment matured'}",
        status=STATUS_ACTIVE,
    )


@transactions_bp.route('/<int:transaction_id>/terminate', methods=['POST'])
@login_required
def terminate_investment(transaction_id):
    """Close a Fixed Deposit or Bond and book the maturity amount as income"""
    user = current_user()
    payload = get_json_body()

    investment = Transaction.query.filter_by(id=transaction_id, user_id=user.id, type='investment').first()
    if investment is None:
        raise NotFoundError('Investment not found')
    if investment.status == STATUS_TERMINATED:
        raise BadRequestError('Investment already terminated')
    if investment.category not in TERMINABLE_CATEGORIES:
        raise BadRequestError('Only Fixed Deposits and Bonds can be terminated')

    try:
        maturity_amount = float(payload.get('maturityAmount') or 0)
    except (TypeError, ValueError):
        raise BadRequestError('Maturity amount must be a number')
    if not math.isfinite(maturity_amount):
        raise BadRequestError('Maturity amount must be a number')
    final_amount = maturity_amount if maturity_amount > 0 else investment.amount

    today = date.today()
    note = f'Terminated on {today.isoformat()}'

    # Both writes go out in a single commit
    try:
        income = maturity_income(investment, final_amount, today)
        investment.status = STATUS_TERMINATED
        investment.notes = f'{investment.notes} | {note}' if investment.notes else note
        db.session.add(income)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Terminating investment %s failed', transaction_id)
        raise

    log_activity(user.id, ActivityActions.INVESTMENT_TERMINATED,
                 f'Terminated {investment.category} investment: {final_amount} returned as income',
                 'success',
                 {'investmentId': investment.id, 'incomeTransactionId': income.id, 'amount': final_amount})
    return jsonify({
        'message': 'Investment terminated successfully',
        'investment': investment.to_dict(),
        'incomeTransaction': income.to_dict(),
    })
