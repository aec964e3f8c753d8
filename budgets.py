"""
Monthly budgets per category, reported with what has been spent so far.
"""
import logging
import re

from flask import Blueprint, jsonify, request

from activity_logger import ActivityActions, log_activity
from analytics import month_bounds
from auth import current_user, login_required
from errors import BadRequestError, NotFoundError
from extensions import db
from models import Budget, Category, Transaction, utcnow
from validations import MONTH_PATTERN, BudgetAmountForm, BudgetForm, get_json_body, parse_json_form

logger = logging.getLogger(__name__)

budgets_bp = Blueprint('budgets', __name__, url_prefix='/api/budgets')


def current_month():
    return utcnow().strftime('%Y-%m')


def find_category(user_id, name):
    """Look the category up by name, preferring the Expense group"""
    query = Category.query.filter_by(user_id=user_id, name=name)
    return query.filter_by(category_group='Expense').first() or query.first()


def get_owned_budget(budget_id, user_id):
    budget = Budget.query.filter_by(id=budget_id, user_id=user_id).first()
    if budget is None:
        raise NotFoundError('Budget not found')
    return budget


def spent_against(budget, expenses):
    total = 0.0
    for t in expenses:
        if t.category_id is not None:
            if t.category_id == budget.category_id:
                total += t.amount
        elif budget.category and t.category == budget.category.name:
            total += t.amount
    return total


@budgets_bp.route('')
@login_required
def list_budgets():
    user = current_user()
    month = request.args.get('month') or current_month()
    if not re.match(MONTH_PATTERN, month):
        raise BadRequestError('Month must be in YYYY-MM format')

    year, month_number = (int(part) for part in month.split('-'))
    start, end = month_bounds(year, month_number)

    budgets = Budget.query.filter_by(user_id=user.id, month=month).all()
    expenses = Transaction.query.filter(
        Transaction.user_id == user.id,
        Transaction.type == 'expense',
        Transaction.date >= start,
        Transaction.date <= end,
    ).all()

    return jsonify([b.to_dict(spent=spent_against(b, expenses)) for b in budgets])


@budgets_bp.route('', methods=['POST'])
@login_required
def set_budget():
    user = current_user()
    form = parse_json_form(BudgetForm, detailed=False)

    category = find_category(user.id, form.category.data)
    if category is None:
        raise NotFoundError('Category not found')

    budget = Budget.query.filter_by(user_id=user.id, category_id=category.id, month=form.month.data).first()
    if budget is None:
        budget = Budget(user_id=user.id, category_id=category.id, month=form.month.data)
        db.session.add(budget)
    budget.amount = form.amount.data
    db.session.commit()

    log_activity(user.id, ActivityActions.BUDGET_SET,
                 f'Set budget of {budget.amount} for {category.name} in {budget.month}', 'info',
                 {'budgetId': budget.id, 'amount': budget.amount, 'category': category.name, 'month': budget.month})
    return jsonify(budget.to_dict()), 201


@budgets_bp.route('/<int:budget_id>', methods=['PUT'])
@login_required
def update_budget(budget_id):
    user = current_user()
    payload = get_json_body()
    if payload.get('amount') in (None, ''):
        raise BadRequestError('Amount is required')
    budget = get_owned_budget(budget_id, user.id)
    form = parse_json_form(BudgetAmountForm, payload, detailed=False)

    previous = budget.amount
    budget.amount = form.amount.data
    db.session.commit()

    log_activity(user.id, ActivityActions.BUDGET_UPDATED,
                 f'Updated budget for {budget.category.name} from {previous} to {budget.amount}', 'info',
                 {'budgetId': budget.id, 'amount': budget.amount, 'previousAmount': previous, 'month': budget.month})
    return jsonify(budget.to_dict())


@budgets_bp.route('/<int:budget_id>', methods=['DELETE'])
@login_required
def delete_budget(budget_id):
    user = current_user()
    budget = get_owned_budget(budget_id, user.id)
    details = {'budgetId': budget.id, 'amount': budget.amount,
               'category': budget.category.name if budget.category else 'Unknown', 'month': budget.month}

    db.session.delete(budget)
    db.session.commit()

    log_activity(user.id, ActivityActions.BUDGET_DELETED,
                 f"Deleted budget for {details['category']} in {details['month']}", 'warning', details)
    return jsonify({'message': 'Budget deleted successfully'})
