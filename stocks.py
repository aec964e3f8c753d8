"""
Stock portfolio lots (BUY/SELL) and live price refresh.
"""
import logging
import math
from datetime import datetime, time

from flask import Blueprint, jsonify, request
from sqlalchemy import or_

from activity_logger import ActivityActions, log_activity
from auth import current_user, login_required
from errors import NotFoundError
from extensions import db
from models import Stock, utcnow
from quotes import fetch_quotes, price_for
from validations import StockForm, parse_json_form

logger = logging.getLogger(__name__)

stocks_bp = Blueprint('stocks', __name__, url_prefix='/api/stocks')


def get_owned_stock(stock_id, user_id):
    stock = Stock.query.filter_by(id=stock_id, user_id=user_id).first()
    if stock is None:
        raise NotFoundError('Stock not found')
    return stock


def apply_form(stock, form):
    stock.symbol = form.symbol.data.strip().upper()
    stock.name = form.name.data.strip()
    stock.quantity = form.quantity.data
    stock.buy_price = form.buyPrice.data
    stock.sell_price = form.sellPrice.data
    stock.broker = form.broker.data or None
    stock.type = form.type.data
    if form.date.data:
        stock.date = datetime.combine(form.date.data, time())
    elif stock.date is None:
        stock.date = utcnow()


def stock_details(stock):
    return {'stockId': stock.id, 'symbol': stock.symbol, 'name': stock.name, 'type': stock.type,
            'quantity': stock.quantity, 'buyPrice': stock.buy_price}


@stocks_bp.route('')
@login_required
def list_stocks():
    user = current_user()
    query = Stock.query.filter(Stock.user_id == user.id)

    search = request.args.get('search')
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(Stock.symbol.ilike(pattern), Stock.name.ilike(pattern)))

    stock_type = request.args.get('type')
    if stock_type and stock_type != 'all':
        query = query.filter(Stock.type == stock_type.upper())

    limit = max(request.args.get('limit', 10, type=int), 1)
    page = request.args.get('page', type=int)

    total = query.count()
    query = query.order_by(Stock.date.desc(), Stock.id.desc())
    # Without a page the whole portfolio is returned
    if page:
        page = max(page, 1)
        query = query.offset((page - 1) * limit).limit(limit)

    return jsonify({
        'stocks': [s.to_dict() for s in query.all()],
        'pagination': {
            'total': total,
            'pages': math.ceil(total / limit),
            'currentPage': page or 1,
            'limit': limit,
        },
    })


@stocks_bp.route('', methods=['POST'])
@login_required
def create_stock():
    user = current_user()
    form = parse_json_form(StockForm)

    stock = Stock(user_id=user.id)
    apply_form(stock, form)
    db.session.add(stock)
    db.session.commit()

    log_activity(user.id, ActivityActions.INVESTMENT_ADDED,
                 f'Added new {stock.type} investment: {stock.name} ({stock.symbol})', 'success',
                 stock_details(stock))
    return jsonify({'stock': stock.to_dict(), 'averaged': False}), 201


@stocks_bp.route('/<int:stock_id>', methods=['PUT'])
@login_required
def update_stock(stock_id):
    user = current_user()
    stock = get_owned_stock(stock_id, user.id)
    form = parse_json_form(StockForm)

    apply_form(stock, form)
    db.session.commit()

    log_activity(user.id, ActivityActions.INVESTMENT_UPDATED,
                 f'Updated investment: {stock.name} ({stock.symbol})', 'info', stock_details(stock))
    return jsonify({'stock': stock.to_dict()})


@stocks_bp.route('/<int:stock_id>', methods=['DELETE'])
@login_required
def delete_stock(stock_id):
    user = current_user()
    stock = get_owned_stock(stock_id, user.id)
    details = stock_details(stock)

    db.session.delete(stock)
    db.session.commit()

    log_activity(user.id, ActivityActions.INVESTMENT_DELETED,
                 f"Deleted investment: {details['name']} ({details['symbol']})", 'warning', details)
    return jsonify({'message': 'Stock deleted successfully'})


@stocks_bp.route('/symbol/<symbol>', methods=['DELETE'])
@login_required
def delete_symbol(symbol):
    """Delete every lot the caller holds for ``symbol``"""
    user = current_user()
    symbol = symbol.strip().upper()
    count = Stock.query.filter_by(user_id=user.id, symbol=symbol).delete(synchronize_session=False)
    db.session.commit()

    if count:
        log_activity(user.id, ActivityActions.INVESTMENT_DELETED,
                     f'Deleted all {count} entries for {symbol}', 'warning', {'symbol': symbol, 'count': count})
    return jsonify({'message': f'Deleted {count} entries for {symbol}', 'count': count})


@stocks_bp.route('/refresh-prices', methods=['POST'])
@login_required
def refresh_prices():
    user = current_user()
    stocks = Stock.query.filter_by(user_id=user.id).all()
    if not stocks:
        return jsonify({'message': 'No stocks to update'})

    price_map = fetch_quotes({s.symbol for s in stocks})

    updated = 0
    for stock in stocks:
        price = price_for(stock.symbol, price_map)
        if price is not None:
            stock.current_price = price
            updated += 1
    db.session.commit()

    logger.info('Refreshed prices for %d of %d stocks for user %s', updated, len(stocks), user.id)
    return jsonify({'message': f'Updated prices for {updated} stocks', 'updated': updated,
                    'stocks': [s.to_dict() for s in stocks]})
