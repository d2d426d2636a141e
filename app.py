# app.py

from flask import Flask, g, request, jsonify
from config import get_config
from extensions import db
import uuid
from werkzeug.middleware.proxy_fix import ProxyFix
from logging_config import setup_logging, get_logger
from services.registry import create_service_registry

logger = get_logger(__name__)


def create_app(config_name=None, test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)

    if test_config:
        app.config.update(test_config)

    # Initialize app with config
    config_class.init_app(app)

    setup_logging(log_level=app.config.get('LOG_LEVEL', 'INFO'))

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    db.init_app(app)

    # Service registry with lazy loading
    registry = create_service_registry()

    registry.register_factory('db_session', lambda: db.session)

    # Repositories
    registry.register_factory(
        'buyer_repository',
        lambda db_session: _create_buyer_repository(db_session),
        dependencies=['db_session']
    )
    registry.register_factory(
        'buyer_history_repository',
        lambda db_session: _create_buyer_history_repository(db_session),
        dependencies=['db_session']
    )

    # Services
    registry.register_factory(
        'buyer',
        lambda buyer_repository, buyer_history_repository: _create_buyer_service(
            buyer_repository, buyer_history_repository, app.config
        ),
        dependencies=['buyer_repository', 'buyer_history_repository']
    )
    registry.register_factory(
        'csv_import',
        lambda buyer_repository, buyer_history_repository: _create_csv_import_service(
            buyer_repository, buyer_history_repository, app.config
        ),
        dependencies=['buyer_repository', 'buyer_history_repository']
    )

    # Attach registry to app
    app.services = registry

    # Add request tracking middleware
    @app.before_request
    def before_request():
        g.request_id = str(uuid.uuid4())
        logger.info("Request started",
                    request_id=g.request_id,
                    method=request.method,
                    path=request.path)

    @app.after_request
    def after_request(response):
        logger.info("Request completed",
                    request_id=getattr(g, 'request_id', None),
                    status_code=response.status_code)
        return response

    # Global error handlers
    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Internal server error",
                     request_id=getattr(g, 'request_id', None),
                     error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(404)
    def not_found_error(error):
        logger.warning("Page not found",
                       request_id=getattr(g, 'request_id', None),
                       path=request.path)
        return jsonify({"error": "Page not found"}), 404

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        from sqlalchemy import text
        health_status = {
            'status': 'healthy',
            'service': 'buyer-leads-crm'
        }

        try:
            db.session.execute(text('SELECT 1'))
            health_status['database'] = 'connected'
        except Exception as e:
            health_status['database'] = 'error'
            health_status['status'] = 'degraded'
            logger.error(f"Health check database error: {e}")

        return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503

    # Register CLI commands
    from scripts import commands
    commands.init_app(app)

    return app


# Service factory functions

def _create_buyer_repository(db_session):
    from repositories.buyer_repository import BuyerRepository
    return BuyerRepository(session=db_session)


def _create_buyer_history_repository(db_session):
    from repositories.buyer_history_repository import BuyerHistoryRepository
    return BuyerHistoryRepository(session=db_session)


def _create_buyer_service(buyer_repository, buyer_history_repository, config):
    from services.buyer_service import BuyerService
    return BuyerService(
        buyer_repository=buyer_repository,
        buyer_history_repository=buyer_history_repository,
        default_page_size=config.get('BUYERS_PAGE_SIZE', 10)
    )


def _create_csv_import_service(buyer_repository, buyer_history_repository, config):
    from services.csv_import_service import CSVImportService
    return CSVImportService(
        buyer_repository=buyer_repository,
        buyer_history_repository=buyer_history_repository,
        max_file_size=config.get('CSV_IMPORT_MAX_FILE_SIZE', 5 * 1024 * 1024),
        max_rows=config.get('CSV_IMPORT_MAX_ROWS', 1000)
    )


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
