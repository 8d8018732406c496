"""
Flask application factory.

Creates and configures the app, registers all blueprints and the circuit
breakers used by lead notifications.
"""
import hmac

from flask import Flask, request, session, jsonify


def create_app():
    """Create and configure the Flask application."""
    from jewelcms import config
    from jewelcms.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = config.SECRET_KEY

    # ── Admin password auth ─────────────────────────────────────────────
    OPEN_ADMIN_PATHS = {'/api/admin/login'}

    @app.before_request
    def require_admin():
        if not request.path.startswith('/api/admin'):
            return
        if not config.ADMIN_PASSWORD:
            return  # no password set, open access (local dev)
        if request.path in OPEN_ADMIN_PATHS or session.get('admin_authenticated'):
            return
        return jsonify({'error': 'Authentication required'}), 401

    @app.route('/api/admin/login', methods=['POST'])
    def admin_login():
        password = (request.get_json(silent=True) or {}).get('password', '')
        if config.ADMIN_PASSWORD and hmac.compare_digest(password, config.ADMIN_PASSWORD):
            session['admin_authenticated'] = True
            return jsonify({'ok': True})
        return jsonify({'error': 'Invalid password'}), 401

    @app.route('/api/admin/logout', methods=['POST'])
    def admin_logout():
        session.pop('admin_authenticated', None)
        return jsonify({'ok': True})

    # Register blueprints
    from jewelcms.routes.health import bp as health_bp
    from jewelcms.routes.leads import bp as leads_bp
    from jewelcms.routes.admin_leads import bp as admin_leads_bp
    from jewelcms.routes.wishlists import bp as wishlists_bp
    from jewelcms.routes.catalog import bp as catalog_bp
    from jewelcms.routes.settings import bp as settings_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(admin_leads_bp)
    app.register_blueprint(wishlists_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(settings_bp)

    from jewelcms.extensions import redis_client
    from jewelcms.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic — no create_all() here.
    import importlib
    for module in ('catalog', 'customer', 'lead', 'site_setting', 'wishlist'):
        importlib.import_module(f'jewelcms.models.{module}')

    return app
