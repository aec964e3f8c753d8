from datetime import date

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Transaction
from tests.conftest import add_transaction


def investment(client, category='Fixed Deposits', amount=10000, notes='SBI 1y FD'):
    return add_transaction(client, type='investment', categoryGroup='Investment', category=category,
                           amount=amount, notes=notes, date='2024-01-15')


def test_requires_authentication(client):
    assert client.get('/api/transactions').status_code == 401
    assert client.post('/api/transactions', json={}).status_code == 401


def test_create_transaction(auth_client):
    tx = add_transaction(auth_client, type='EXPENSE', subCategory='Restaurants')
    assert tx['type'] == 'expense'
    assert tx['amount'] == 100
    assert tx['date'] == '2024-03-10'
    assert tx['category'] == 'Food'
    assert tx['categoryGroup'] == 'Expense'
    assert tx['subCategory'] == 'Restaurants'
    assert tx['description'] == 'Dinner'
    assert tx['status'] == 'active'


def test_create_links_category_by_id(auth_client):
    categories = auth_client.get('/api/categories?categoryGroup=Expense').get_json()['categories']
    groceries = next(c for c in categories if c['name'] == 'Groceries')
    tx = add_transaction(auth_client, category='groceries', categoryId=groceries['id'])
    assert tx['categoryId'] == groceries['id']
    assert tx['category'] == 'Groceries'


def test_create_rejects_foreign_category(auth_client, other_client):
    categories = other_client.get('/api/categories').get_json()['categories']
    response = auth_client.post('/api/transactions', json={
        'type': 'expense', 'categoryGroup': 'Expense', 'category': 'Food', 'amount': 10,
        'date': '2024-03-10', 'categoryId': categories[0]['id'],
    })
    assert response.status_code == 404


def test_create_validation(auth_client):
    response = auth_client.post('/api/transactions', json={
        'type': 'gift', 'categoryGroup': 'Expense', 'category': 'Food', 'amount': -5, 'date': '10/03/2024',
    })
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Validation failed'
    assert set(body['details']) >= {'type', 'amount', 'date'}


def test_create_rejects_non_finite_amounts(auth_client):
    for amount in ('nan', 'inf', '-inf'):
        response = auth_client.post('/api/transactions', json={
            'type': 'expense', 'categoryGroup': 'Expense', 'category': 'Food', 'amount': amount,
            'date': '2024-03-10',
        })
        assert response.status_code == 400
        assert response.get_json()['details']['amount'] == ['Amount must be greater than 0']
    assert auth_client.get('/api/transactions').get_json()['pagination']['total'] == 0


def test_list_filters_sorting_and_pagination(auth_client):
    add_transaction(auth_client, amount=50, date='2024-01-05', category='Food', notes='Lunch')
    add_transaction(auth_client, amount=500, date='2024-02-05', category='Rent', notes='February rent')
    add_transaction(auth_client, type='income', categoryGroup='Income', category='Salary', amount=3000,
                    date='2024-02-01', notes='Payroll')

    body = auth_client.get('/api/transactions').get_json()
    assert body['pagination'] == {'total': 3, 'pages': 1, 'page': 1, 'limit': 10}
    assert [t['date'] for t in body['transactions']] == ['2024-02-05', '2024-02-01', '2024-01-05']

    body = auth_client.get('/api/transactions?type=income').get_json()
    assert [t['category'] for t in body['transactions']] == ['Salary']

    body = auth_client.get('/api/transactions?category=rEn').get_json()
    assert [t['amount'] for t in body['transactions']] == [500]

    body = auth_client.get('/api/transactions?startDate=2024-02-01&endDate=2024-02-28').get_json()
    assert body['pagination']['total'] == 2

    body = auth_client.get('/api/transactions?minAmount=100&maxAmount=1000').get_json()
    assert [t['amount'] for t in body['transactions']] == [500]

    body = auth_client.get('/api/transactions?description=lunch').get_json()
    assert [t['notes'] for t in body['transactions']] == ['Lunch']

    body = auth_client.get('/api/transactions?sortBy=amount&order=asc&limit=2&page=2').get_json()
    assert [t['amount'] for t in body['transactions']] == [3000]
    assert body['pagination'] == {'total': 3, 'pages': 2, 'page': 2, 'limit': 2}


def test_list_rejects_bad_dates(auth_client):
    assert auth_client.get('/api/transactions?startDate=yesterday').status_code == 400


def test_list_only_returns_own_transactions(auth_client, other_client):
    add_transaction(auth_client)
    assert other_client.get('/api/transactions').get_json()['pagination']['total'] == 0


def test_update_transaction(auth_client):
    tx = add_transaction(auth_client)
    response = auth_client.put(f"/api/transactions/{tx['id']}", json={
        'type': 'expense', 'categoryGroup': 'Expense', 'category': 'Travel', 'amount': 250,
        'date': '2024-03-12', 'notes': 'Taxi',
    })
    assert response.status_code == 200
    updated = response.get_json()['transaction']
    assert updated['amount'] == 250
    assert updated['category'] == 'Travel'
    assert updated['date'] == '2024-03-12'

    logs = auth_client.get('/api/activity-logs').get_json()['logs']
    entry = next(log for log in logs if log['action'] == 'transaction_updated')
    assert entry['metadata']['previousData'] == {'amount': 100, 'type': 'expense', 'category': 'Food'}


def test_update_and_delete_check_ownership(auth_client, other_client):
    tx = add_transaction(auth_client)
    response = other_client.put(f"/api/transactions/{tx['id']}", json={
        'type': 'expense', 'categoryGroup': 'Expense', 'category': 'Food', 'amount': 1, 'date': '2024-03-10',
    })
    assert response.status_code == 404
    assert other_client.delete(f"/api/transactions/{tx['id']}").status_code == 404
    assert auth_client.get('/api/transactions').get_json()['pagination']['total'] == 1


def test_delete_transaction(auth_client):
    tx = add_transaction(auth_client)
    response = auth_client.delete(f"/api/transactions/{tx['id']}")
    assert response.status_code == 200
    assert auth_client.get('/api/transactions').get_json()['pagination']['total'] == 0
    assert auth_client.delete(f"/api/transactions/{tx['id']}").status_code == 404


def test_terminate_fixed_deposit(auth_client):
    fd = investment(auth_client)
    response = auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={'maturityAmount': 10650})
    assert response.status_code == 200
    body = response.get_json()

    assert body['investment']['status'] == 'terminated'
    assert body['investment']['notes'].startswith('SBI 1y FD | Terminated on ')
    income = body['incomeTransaction']
    assert income['type'] == 'income'
    assert income['amount'] == 10650
    assert income['categoryGroup'] == 'Income'
    assert income['category'] == 'Investment Returns'
    assert income['date'] == date.today().isoformat()
    assert income['notes'] == 'Maturity from Fixed Deposits: SBI 1y FD'

    logs = auth_client.get('/api/activity-logs').get_json()['logs']
    assert 'investment_terminated' in [log['action'] for log in logs]


def test_terminate_defaults_to_original_amount(auth_client):
    bond = investment(auth_client, category='Bonds', amount=5000, notes=None)
    body = auth_client.post(f"/api/transactions/{bond['id']}/terminate", json={'maturityAmount': 0}).get_json()
    assert body['incomeTransaction']['amount'] == 5000
    assert body['incomeTransaction']['notes'] == 'Maturity from Bonds: Investment matured'
    assert body['investment']['notes'].startswith('Terminated on ')


def test_terminate_keeps_original_notes_on_income(auth_client):
    fd = investment(auth_client, notes='HDFC 5y FD')
    body = auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={}).get_json()
    assert body['incomeTransaction']['notes'] == 'Maturity from Fixed Deposits: HDFC 5y FD'
    assert 'Terminated on' not in body['incomeTransaction']['notes']
    assert body['investment']['notes'] == f'HDFC 5y FD | Terminated on {date.today().isoformat()}'


def test_terminate_rejects_non_finite_maturity_amount(auth_client):
    fd = investment(auth_client)
    response = auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={'maturityAmount': 'nan'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Maturity amount must be a number'

    listed = auth_client.get('/api/transactions').get_json()['transactions']
    assert [t['status'] for t in listed] == ['active']


def test_terminate_rejections(auth_client, other_client):
    fd = investment(auth_client)
    stocks = investment(auth_client, category='Stocks')
    expense = add_transaction(auth_client)

    assert other_client.post(f"/api/transactions/{fd['id']}/terminate", json={}).status_code == 404
    assert auth_client.post(f"/api/transactions/{expense['id']}/terminate", json={}).status_code == 404

    response = auth_client.post(f"/api/transactions/{stocks['id']}/terminate", json={})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Only Fixed Deposits and Bonds can be terminated'

    assert auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={}).status_code == 200
    response = auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Investment already terminated'


def test_terminate_is_atomic(app, auth_client):
    fd = investment(auth_client)

    def fail_income_insert(session, flush_context, instances):
        if any(isinstance(obj, Transaction) and obj.type == 'income' for obj in session.new):
            raise SQLAlchemyError('insert failed')

    event.listen(Session, 'before_flush', fail_income_insert)
    try:
        response = auth_client.post(f"/api/transactions/{fd['id']}/terminate", json={})
    finally:
        event.remove(Session, 'before_flush', fail_income_insert)

    assert response.status_code == 500
    assert response.get_json()['error'] == 'Internal server error'

    with app.app_context():
        rows = Transaction.query.all()
        assert len(rows) == 1
        assert rows[0].status == 'active'
        assert rows[0].notes == 'SBI 1y FD'
