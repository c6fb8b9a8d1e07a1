"""Health and readiness endpoints."""
from flask import Blueprint, jsonify, current_app

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Liveness: the process answers."""
    return jsonify({'status': 'ok'})


@health_bp.route('/readyz')
def readyz():
    """Readiness: report whether both market data caches hold a value.

    Always 200; an empty cache still prices via fallbacks, so this is
    informational for dashboards rather than a traffic gate.
    """
    service = current_app.extensions['pricing_service']
    gold = service.gold.cache.peek()
    fx = service.exchange.cache.peek()
    return jsonify({
        'status': 'ok',
        'gold_price_cached': gold is not None,
        'exchange_rate_cached': fx is not None,
        'gold_price_fresh': service.gold.cache.is_fresh(),
        'exchange_rate_fresh': service.exchange.cache.is_fresh(),
    })
