"""API routes for market data and price calculation."""
from flask import Blueprint, jsonify, request, current_app

from app.db import get_db
from app.services.catalog import CatalogRepository
from app.services.config import get_default_exchange_rate, get_market_data_config
from app.services.errors import InvalidInputError
from app.services.providers.registry import get_provider_status

api_bp = Blueprint('api', __name__)


def get_pricing_service():
    """Return the process-wide PricingService built by create_app."""
    return current_app.extensions['pricing_service']


@api_bp.route('/gold-price')
def gold_price():
    """Return the current 24K gold price per gram in INR.

    Returns:
        JSON with price, timestamp (epoch ms), location and the source tag
        (live provider, cache fallback, or estimate).
    """
    try:
        return jsonify(get_pricing_service().gold_price())
    except Exception as e:
        current_app.logger.exception(f"Error fetching gold price: {e}")
        return jsonify({'success': False, 'error': str(e) or 'Unknown error'}), 500


@api_bp.route('/exchange-rate')
def exchange_rate():
    """Return the current USD to INR exchange rate.

    fallbackRate is included whenever the served rate is not a live fetch.
    """
    try:
        return jsonify(get_pricing_service().exchange_rate())
    except Exception as e:
        current_app.logger.exception(f"Error in exchange rate endpoint: {e}")
        return jsonify({
            'success': False,
            'error': 'Failed to fetch exchange rate',
            'fallbackRate': get_default_exchange_rate(),
        }), 500


@api_bp.route('/calculate-price', methods=['POST'])
def calculate_price():
    """Price a jewelry item from its metal and stone selections.

    Request body:
    {
        "metalTypeId": 3,
        "metalWeight": 10,
        "primaryStone": {"stoneTypeId": "Natural Diamond", "caratWeight": 1},
        "secondaryStones": [{"stoneTypeId": 7, "caratWeight": 0.5}],
        "otherStone": {"stoneTypeId": "none_selected", "caratWeight": 0}
    }

    Returns:
        JSON with inr and usd quotes (price, currency, breakdown) and the
        resolved inputs. 400 on invalid input, 500 on internal error.
    """
    body = request.get_json(silent=True)
    current_app.logger.debug(f"Price calculator called with body: {body}")

    try:
        result = get_pricing_service().calculate_price(body, CatalogRepository(get_db()))
    except InvalidInputError as e:
        current_app.logger.info(f"Rejected price calculation: {e.message}")
        return jsonify(e.to_dict()), 400
    except Exception as e:
        current_app.logger.exception(f"Error calculating jewelry price: {e}")
        return jsonify({'success': False, 'error': 'Price calculation failed'}), 500

    return jsonify(result)


@api_bp.route('/market-data/status')
def market_data_status():
    """Return cache state for both market data values plus configuration."""
    return jsonify({
        'caches': get_pricing_service().status(),
        'providers': get_provider_status(),
        'config': get_market_data_config(),
    })
