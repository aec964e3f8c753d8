"""
Live stock quotes from Yahoo Finance (served through RapidAPI).

Symbols without an exchange suffix are assumed to be Indian listings: numeric
codes trade on BSE (``.BO``), everything else on NSE (``.NS``).
"""
import logging
import re

import requests
from flask import current_app

from errors import ServiceError

logger = logging.getLogger(__name__)

QUOTES_PATH = '/api/v1/markets/stock/quotes'
EXCHANGE_SUFFIXES = ('.NS', '.BO')


class QuoteServiceError(ServiceError):
    message = 'Failed to fetch prices from live market API'


def to_exchange_ticker(symbol):
    sym = symbol.strip().upper()
    # Respect an exchange the user already specified
    if sym.endswith(EXCHANGE_SUFFIXES):
        return sym
    return f'{sym}.BO' if re.fullmatch(r'\d+', sym) else f'{sym}.NS'


def base_symbol(ticker):
    return ticker.replace('.NS', '').replace('.BO', '')


def fetch_quotes(symbols):
    """Return {ticker: price} for ``symbols``, keyed by both the full and the base ticker"""
    config = current_app.config
    if not config.get('RAPIDAPI_KEY'):
        logger.error('RAPIDAPI_KEY is not configured')
        raise QuoteServiceError()

    tickers = sorted({to_exchange_ticker(s) for s in symbols})
    url = f"https://{config['RAPIDAPI_HOST']}{QUOTES_PATH}"
    try:
        response = requests.get(
            url,
            params={'ticker': ','.join(tickers)},
            headers={
                'x-rapidapi-key': config['RAPIDAPI_KEY'],
                'x-rapidapi-host': config['RAPIDAPI_HOST'],
            },
            timeout=config['QUOTE_API_TIMEOUT'],
        )
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as e:
        logger.error('Quote API error for %s: %s', ','.join(tickers), e)
        raise QuoteServiceError() from e
    except ValueError as e:
        logger.error('Quote API returned invalid JSON: %s', e)
        raise QuoteServiceError() from e

    if not isinstance(data, dict):
        logger.error('Quote API returned an unexpected payload')
        raise QuoteServiceError()

    price_map = {}
    for item in data.get('body') or []:
        ticker = item.get('symbol')
        price = item.get('regularMarketPrice')
        if not ticker or price is None:
            continue
        price_map[ticker] = float(price)
        price_map[base_symbol(ticker)] = float(price)
    logger.info('Fetched %d quotes for %d tickers', len(price_map) // 2, len(tickers))
    return price_map


def price_for(symbol, price_map):
    sym = symbol.upper()
    for key in (sym, f'{sym}.NS', f'{sym}.BO'):
        price = price_map.get(key)
        if price is not None:
            return price
    return None
