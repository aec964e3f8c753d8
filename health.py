from datetime import datetime, timezone

from flask import Blueprint, jsonify

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
def health_check():
    """Health check endpoint for the load balancer"""
    return jsonify({
        'status': 'ok',
        'service': 'mywealth-api',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
