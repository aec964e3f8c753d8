"""
Aggregations behind the dashboard, investments and monthly report endpoints.

Everything here works on already-fetched ORM rows and is recomputed per
request. Terminated investments never count towards any total.
"""
import calendar
import math
from collections import defaultdict
from datetime import date, datetime

from models import STATUS_TERMINATED

EQUITY_STOCKS = 'Equity Stocks'
DEFAULT_HISTORY_MONTHS = 6


def js_round(value):
    """Round half up, the way the dashboard has always displayed figures"""
    return int(math.floor(value + 0.5))


def as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def month_start(day):
    return day.replace(day=1)


def month_end(day):
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def shift_months(day, months):
    """First day of the month ``months`` away from ``day``"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def month_label(day):
    return day.strftime('%b %Y')


def month_bounds(year, month):
    start = date(year, month, 1)
    return start, month_end(start)


def counts(transaction):
    return not (transaction.type == 'investment' and transaction.status == STATUS_TERMINATED)


def total_of(transactions, type_):
    return sum(t.amount for t in transactions if t.type == type_ and counts(t))


def within(transactions, start, end):
    return [t for t in transactions if start <= as_date(t.date) <= end]


def in_month(transactions, day):
    return within(transactions, month_start(day), month_end(day))


def growth(current, previous):
    if previous > 0:
        return ((current - previous) / previous) * 100
    return 0


def breakdown(totals):
    return [{'name': name, 'value': value} for name, value in totals.items()]


def dashboard_analytics(transactions, today, history_months=DEFAULT_HISTORY_MONTHS):
    total_income = total_of(transactions, 'income')
    total_expenses = total_of(transactions, 'expense')
    total_investments = total_of(transactions, 'investment')
    net_savings = total_income - total_expenses

    this_month = in_month(transactions, today)
    last_month = in_month(transactions, shift_months(today, -1))
    this_month_income = total_of(this_month, 'income')
    this_month_expenses = total_of(this_month, 'expense')
    this_month_investments = total_of(this_month, 'investment')

    savings_rate = (net_savings / total_income) * 100 if total_income > 0 else 0

    monthly_data = []
    for offset in range(history_months - 1, -1, -1):
        month = shift_months(today, -offset)
        month_tx = in_month(transactions, month)
        income = total_of(month_tx, 'income')
        expense = total_of(month_tx, 'expense')
        monthly_data.append({
            'month': month_label(month),
            'income': income,
            'expense': expense,
            'investment': total_of(month_tx, 'investment'),
            'savings': income - expense,
        })

    by_type = {'income': defaultdict(float), 'expense': defaultdict(float), 'investment': defaultdict(float)}
    for t in transactions:
        if t.type in by_type and counts(t):
            by_type[t.type][t.category or 'Uncategorized'] += t.amount

    return {
        'metrics': {
            'totalIncome': total_income,
            'totalExpenses': total_expenses,
            'netSavings': net_savings,
            'totalInvestments': total_investments,
            'thisMonthIncome': this_month_income,
            'thisMonthExpenses': this_month_expenses,
            'savingsRate': js_round(savings_rate * 100) / 100,
            'incomeGrowth': growth(this_month_income, total_of(last_month, 'income')),
            'expenseGrowth': growth(this_month_expenses, total_of(last_month, 'expense')),
            'investmentGrowth': growth(this_month_investments, total_of(last_month, 'investment')),
        },
        'monthlyData': monthly_data,
        'incomeBreakdown': breakdown(by_type['income']),
        'expenseBreakdown': breakdown(by_type['expense']),
        'investmentAllocation': breakdown(by_type['investment']),
    }


def stock_holdings(stocks):
    """Net position per symbol; a SELL removes the average cost of the quantity sold"""
    holdings = {}
    for stock in sorted(stocks, key=lambda s: (as_date(s.date) or date.min, s.id or 0)):
        holding = holdings.setdefault(stock.symbol.upper(), {'quantity': 0.0, 'totalInvested': 0.0})
        if stock.type == 'BUY':
            holding['quantity'] += stock.quantity
            holding['totalInvested'] += stock.quantity * stock.buy_price
        else:
            held = holding['quantity']
            avg_cost = holding['totalInvested'] / held if held > 0 else 0
            holding['quantity'] -= stock.quantity
            holding['totalInvested'] -= stock.quantity * avg_cost
    return holdings


def stock_cash_flow(stock):
    if stock.type == 'BUY':
        return stock.quantity * stock.buy_price
    return -(stock.quantity * (stock.sell_price or stock.buy_price))


def investment_analytics(investments, stocks, today, history_months=DEFAULT_HISTORY_MONTHS):
    investments = [t for t in investments if counts(t)]

    by_category = defaultdict(float)
    for t in investments:
        by_category[t.category or 'Uncategorized'] += t.amount

    stock_invested = sum(h['totalInvested'] for h in stock_holdings(stocks).values() if h['quantity'] > 0)
    if stock_invested > 0:
        by_category[EQUITY_STOCKS] += stock_invested

    flows = [(as_date(t.date), t.amount) for t in investments]
    flows += [(as_date(s.date), stock_cash_flow(s)) for s in stocks if s.date]

    this_month_start = month_start(today)
    last_month_start = shift_months(today, -1)
    last_month_end = month_end(last_month_start)
    this_month_total = sum(amount for day, amount in flows if day >= this_month_start)
    last_month_total = sum(amount for day, amount in flows if last_month_start <= day <= last_month_end)

    monthly_data = []
    for offset in range(history_months - 1, -1, -1):
        month = shift_months(today, -offset)
        start, end = month_start(month), month_end(month)
        month_investments = within(investments, start, end)
        month_buys = [s for s in stocks
                      if s.date and s.type == 'BUY' and start <= as_date(s.date) <= end]

        month_breakdown = defaultdict(float)
        for t in month_investments:
            month_breakdown[t.category or 'Uncategorized'] += t.amount
        stocks_amount = sum(s.quantity * s.buy_price for s in month_buys)
        if stocks_amount > 0:
            month_breakdown[EQUITY_STOCKS] += stocks_amount

        entry = {
            'month': month_label(month),
            'amount': max(0, sum(month_breakdown.values())),
            'count': len(month_investments) + len(month_buys),
        }
        entry.update(month_breakdown)
        monthly_data.append(entry)

    return {
        'totalInvested': sum(by_category.values()),
        'categoryCount': len(by_category),
        'monthlyGrowth': growth(this_month_total, last_month_total),
        'categoryBreakdown': [{'category': name, 'amount': amount} for name, amount in by_category.items()],
        'allocation': breakdown(by_category),
        'monthlyData': monthly_data,
        'categories': list(by_category),
    }


def savings_insight(savings_rate, total_income):
    if savings_rate > 30:
        return ('Excellent! You are saving over 30% of your income. '
                'You are on the fast track to financial freedom.')
    if savings_rate < 10 and total_income > 0:
        return ('Warning: Your savings rate is low. '
                'Try to reduce discretionary expenses to build a safety net.')
    return 'Your financial health is stable.'


def monthly_report(transactions):
    """Summary of one month's transactions for the reports page and email"""
    total_income = 0.0
    total_expenses = 0.0
    total_investments = 0.0
    category_breakdown = defaultdict(float)

    for t in transactions:
        kind = t.type.lower()
        if kind == 'income':
            total_income += t.amount
        elif kind == 'expense':
            total_expenses += t.amount
            category_breakdown[t.category_name] += t.amount
        elif kind == 'investment':
            total_investments += t.amount

    net_savings = total_income - total_expenses
    savings_rate = (net_savings / total_income) * 100 if total_income > 0 else 0
    efficiency_score = min(100, max(0, savings_rate * 1.5))

    ordered = sorted(transactions, key=lambda t: (as_date(t.date), t.id or 0), reverse=True)
    all_transactions = [{
        'id': t.id,
        'amount': t.amount,
        'date': as_date(t.date).isoformat(),
        'notes': t.notes or 'No description',
        'type': t.type,
        'status': 'Credit' if t.type.lower() == 'income' else 'Debit',
        'category': t.category_name,
        'categoryGroup': (t.category_rel.category_group if t.category_rel else None) or t.category_group or 'General',
        'subCategory': t.sub_category,
    } for t in ordered]

    return {
        'totalIncome': total_income,
        'totalExpenses': total_expenses,
        'totalInvestments': total_investments,
        'netSavings': net_savings,
        'categoryBreakdown': dict(category_breakdown),
        'transactionCount': len(transactions),
        'topTransactions': [],
        'allTransactions': all_transactions,
        'efficiencyScore': js_round(efficiency_score),
        'projections': {
            'oneYear': js_round(net_savings * 12 * 1.04),
            'fiveYears': js_round(net_savings * 60 * 1.25),
        },
        'aiInsights': [
            savings_insight(savings_rate, total_income),
            'Your investment diversification looks healthy.' if total_investments > 0
            else 'No investments recorded this month. Consider starting an SIP.',
            'Critical: Expenses exceeded income this month.' if total_expenses > total_income
            else 'Success: You lived within your means.',
        ],
    }


def top_categories(category_breakdown, limit=5):
    return sorted(category_breakdown.items(), key=lambda item: item[1], reverse=True)[:limit]
