"""Flask application factory for the jewelry pricing engine."""
import logging
import os
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


logger = logging.getLogger('app')


def create_app(config: dict | None = None, pricing_service=None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.
        pricing_service: Optional prebuilt PricingService (tests inject one
            with fake providers). Built from the provider registry otherwise.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Trust X-Forwarded-For from reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Default configuration
    app.config.update(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        JSON_SORT_KEYS=False,
        DATA_DIR=os.environ.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data')),
    )

    # Override with provided config
    if config:
        app.config.update(config)

    # Initialize database
    from app import db
    db.init_app(app)

    # Register CLI commands
    from app import cli
    cli.register_cli(app)

    # One set of market data caches per process, shared by every request
    if pricing_service is None:
        from app.services.pricing import build_pricing_service
        pricing_service = build_pricing_service()
        if not app.config.get('TESTING'):
            pricing_service.warm()
    app.extensions['pricing_service'] = pricing_service

    # Register blueprints
    from app.routes.health import health_bp
    from app.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api')

    # Scheduled refresh (single-container deployments)
    from app.services.config import is_background_refresh_enabled
    if is_background_refresh_enabled():
        from app.services.background_refresh import start_background_refresh
        logger.info("Background market data refresh enabled")
        start_background_refresh(pricing_service)

    return app
