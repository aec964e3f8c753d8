from mail import get_outbox
from tests.conftest import add_stock, add_transaction


def seed_march(client):
    add_transaction(client, type='income', categoryGroup='Income', category='Salary', amount=1000,
                    date='2024-03-01', notes='Payroll')
    add_transaction(client, amount=200, date='2024-03-09', category='Food')
    add_transaction(client, amount=100, date='2024-03-04', category='Rent')
    add_transaction(client, amount=40, date='2024-02-28', category='Food')
    return add_transaction(client, type='investment', categoryGroup='Investment', category='Fixed Deposits',
                           amount=300, date='2024-03-02')


def test_analytics_totals_exclude_terminated_investments(auth_client):
    fd = seed_march(auth_client)
    metrics = auth_client.get('/api/analytics').get_json()['metrics']
    assert metrics['totalIncome'] == 1000
    assert metrics['totalExpenses'] == 340
    assert metrics['totalInvestments'] == 300

    auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={'maturityAmount': 320})
    metrics = auth_client.get('/api/analytics').get_json()['metrics']
    assert metrics['totalInvestments'] == 0
    assert metrics['totalIncome'] == 1320


def test_analytics_date_range_needs_both_ends(auth_client):
    seed_march(auth_client)
    ranged = auth_client.get('/api/analytics?startDate=2024-03-01&endDate=2024-03-31').get_json()
    assert ranged['metrics']['totalExpenses'] == 300

    half_open = auth_client.get('/api/analytics?startDate=2024-03-01').get_json()
    assert half_open['metrics']['totalExpenses'] == 340


def test_analytics_shape(auth_client):
    body = auth_client.get('/api/analytics?historyMonths=12').get_json()
    assert len(body['monthlyData']) == 12
    assert body['incomeBreakdown'] == []
    assert set(body) == {'metrics', 'monthlyData', 'incomeBreakdown', 'expenseBreakdown', 'investmentAllocation'}


def test_investments_include_equity_stocks(auth_client):
    seed_march(auth_client)
    add_stock(auth_client, quantity=2, buyPrice=1000)
    body = auth_client.get('/api/investments').get_json()
    assert body['totalInvested'] == 2300
    assert set(body['categories']) == {'Fixed Deposits', 'Equity Stocks'}
    assert {'name': 'Equity Stocks', 'value': 2000} in body['allocation']
    assert len(body['monthlyData']) == 6


def test_investments_only_see_own_data(auth_client, other_client):
    seed_march(auth_client)
    assert other_client.get('/api/investments').get_json()['totalInvested'] == 0


def test_report_summary(auth_client):
    seed_march(auth_client)
    body = auth_client.get('/api/reports/summary?month=3&year=2024').get_json()
    assert body['totalIncome'] == 1000
    assert body['totalExpenses'] == 300
    assert body['totalInvestments'] == 300
    assert body['categoryBreakdown'] == {'Food': 200, 'Rent': 100}
    assert body['transactionCount'] == 4
    assert body['projections'] == {'oneYear': 8736, 'fiveYears': 52500}
    assert body['allTransactions'][0]['date'] == '2024-03-09'
    assert body['allTransactions'][-1]['status'] == 'Credit'
    assert len(body['aiInsights']) == 3


def test_report_summary_rejects_bad_month(auth_client):
    assert auth_client.get('/api/reports/summary?month=13&year=2024').status_code == 400


def test_send_report_email(app, auth_client):
    response = auth_client.post('/api/reports/send-email', json={
        'summary': {
            'totalIncome': 1000,
            'totalExpenses': '300',
            'categoryBreakdown': {'Food': 200, 'Rent': 100, 'Fun': 5, 'Books': 1, 'Gym': 30, 'Tea': 2},
        },
        'monthName': 'March',
        'year': 2024,
    })
    assert response.status_code == 200
    with app.app_context():
        message = get_outbox()[-1]
    assert message['to'] == 'alice@example.com'
    assert message['subject'] == 'Your Wealth Summary for March 2024'
    assert '₹1,000.00' in message['html']
    assert '₹700.00' in message['html']
    assert 'Gym' in message['html']
    # Only the top five categories are listed
    assert 'Books' not in message['html']


def test_send_report_email_validation(auth_client):
    response = auth_client.post('/api/reports/send-email', json={'monthName': 'March'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Summary data is required'

    response = auth_client.post('/api/reports/send-email', json={'summary': {'totalIncome': 'lots'}})
    assert response.status_code == 400


def test_send_report_email_failure(app, auth_client):
    app.config['MAIL_SUPPRESS_SEND'] = False
    app.config['MAIL_PASSWORD'] = None
    response = auth_client.post('/api/reports/send-email', json={'summary': {'totalIncome': 1}})
    assert response.status_code == 500
