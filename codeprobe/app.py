import time

from flask import Flask, g, request

from codeprobe.engine.facade import TestExecutionService
from codeprobe.routes.execution_routes import execution_bp
from codeprobe.routes.system_routes import system_bp
from codeprobe.utils.api_response import APIResponse, ErrorCodes
from codeprobe.utils.logger import setup_logger
from codeprobe.utils.metrics import get_metrics_collector

# Setup application logger
logger = setup_logger(__name__)

# Code size cap plus room for the JSON envelope
MAX_CONTENT_LENGTH = 1024 * 1024


def create_app(service: TestExecutionService = None) -> Flask:
    """
    Build the Flask app.

    Args:
        service: Engine instance to serve; the lazily built default is used when None
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

    if service is not None:
        app.extensions['codeprobe'] = service

    @app.before_request
    def before_request():
        """Track request start time"""
        g.start_time = time.time()

    @app.after_request
    def after_request(response):
        """Track request completion and metrics"""
        if hasattr(g, 'start_time'):
            duration = time.time() - g.start_time
            endpoint = request.endpoint or 'unknown'
            get_metrics_collector().record_run(f"request:{endpoint}", duration, response.status_code < 400)

            # Add timing header
            response.headers['X-Response-Time'] = f"{duration*1000:.2f}ms"

        return response

    @app.errorhandler(404)
    def not_found(error):
        return APIResponse.error('Resource not found', ErrorCodes.NOT_FOUND, status_code=404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return APIResponse.error('Method not allowed', ErrorCodes.METHOD_NOT_ALLOWED, status_code=405)

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error: {error}")
        return APIResponse.error('Internal server error', ErrorCodes.INTERNAL_SERVER_ERROR, status_code=500)

    # Register the Blueprints
    app.register_blueprint(execution_bp)
    app.register_blueprint(system_bp)

    logger.info("codeprobe API initialized")
    return app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000)
