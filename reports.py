"""
Read-only analytics: dashboard metrics, investment overview and the monthly report.
"""
import logging
from datetime import date

from flask import Blueprint, jsonify, request

from analytics import (
    DEFAULT_HISTORY_MONTHS,
    dashboard_analytics,
    investment_analytics,
    month_bounds,
    monthly_report,
    top_categories,
)
from auth import current_user, login_required
from errors import BadRequestError
from mail import send_monthly_report_email
from models import Stock, Transaction
from transactions import parse_date_arg
from validations import get_json_body

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__)


def history_months():
    months = request.args.get('historyMonths', DEFAULT_HISTORY_MONTHS, type=int)
    return min(max(months, 1), 36)


@reports_bp.route('/api/analytics')
@login_required
def dashboard():
    user = current_user()
    query = Transaction.query.filter(Transaction.user_id == user.id)

    start_date = parse_date_arg('startDate')
    end_date = parse_date_arg('endDate')
    # A half-open range is ignored
    if start_date and end_date:
        query = query.filter(Transaction.date >= start_date, Transaction.date <= end_date)

    return jsonify(dashboard_analytics(query.all(), date.today(), history_months()))


@reports_bp.route('/api/investments')
@login_required
def investments():
    user = current_user()
    investment_rows = (Transaction.query
                       .filter_by(user_id=user.id, type='investment')
                       .order_by(Transaction.date.asc())
                       .all())
    stocks = Stock.query.filter_by(user_id=user.id).all()
    return jsonify(investment_analytics(investment_rows, stocks, date.today(), history_months()))


@reports_bp.route('/api/reports/summary')
@login_required
def report_summary():
    user = current_user()
    today = date.today()
    month = request.args.get('month', today.month, type=int)
    year = request.args.get('year', today.year, type=int)
    if not 1 <= month <= 12:
        raise BadRequestError('Month must be between 1 and 12')

    start, end = month_bounds(year, month)
    transactions = Transaction.query.filter(
        Transaction.user_id == user.id,
        Transaction.date >= start,
        Transaction.date <= end,
    ).all()
    return jsonify(monthly_report(transactions))


def coerce_summary(summary):
    try:
        breakdown = {str(name): float(amount)
                     for name, amount in (summary.get('categoryBreakdown') or {}).items()}
        return {
            'totalIncome': float(summary.get('totalIncome') or 0),
            'totalExpenses': float(summary.get('totalExpenses') or 0),
            'categoryBreakdown': breakdown,
        }
    except (AttributeError, TypeError, ValueError):
        raise BadRequestError('Summary data is invalid')


@reports_bp.route('/api/reports/send-email', methods=['POST'])
@login_required
def send_report_email():
    user = current_user()
    payload = get_json_body()
    summary = payload.get('summary')
    if not summary:
        raise BadRequestError('Summary data is required')
    if not isinstance(summary, dict):
        raise BadRequestError('Summary data is invalid')

    summary = coerce_summary(summary)
    today = date.today()
    month_name = payload.get('monthName') or today.strftime('%B')
    year = payload.get('year') or today.year

    send_monthly_report_email(user, summary, month_name, year, top_categories(summary['categoryBreakdown']))
    logger.info('Monthly report for %s %s sent to user %s', month_name, year, user.id)
    return jsonify({'message': 'Email sent successfully'})
