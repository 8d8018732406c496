"""
Health routes — liveness probe and notification channel circuit breakers.
"""
from flask import Blueprint, jsonify

from jewelcms.services.circuit_breaker import get_all_breakers, get_breaker

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker state for every notification channel."""
    return jsonify({
        'services': {name: cb.health() for name, cb in get_all_breakers().items()},
    })


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_breaker(service)
    if breaker is None:
        return jsonify({'error': f"Unknown service '{service}'"}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': service, 'state': breaker.state})
