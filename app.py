"""
CNA Reports - Main Flask Application
Serves item-level statistics and report exports for Capability Needs Analysis surveys
"""
from flask import Flask, jsonify, g

from config_logging import (
    APP_NAME, VERSION, AppConfig, StructuredLogger, get_config, get_logger,
)
from cna_reports.routes import reports_blueprint

logger = get_logger('cna_reports.app')


def create_app(config: AppConfig = None) -> Flask:
    """Build the Flask application with the reports blueprint mounted."""
    config = config or get_config()
    is_valid, errors = config.validate()
    if not is_valid:
        for error in errors:
            logger.warning(f"Configuration problem: {error}")

    flask_app = Flask(__name__)
    flask_app.config['MAX_CONTENT_LENGTH'] = config.max_content_length
    flask_app.config['CNA_ORG_NAME'] = config.org_name

    @flask_app.before_request
    def assign_correlation_id():
        g.correlation_id = StructuredLogger.new_correlation_id()

    @flask_app.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'app': APP_NAME, 'version': VERSION})

    flask_app.register_blueprint(reports_blueprint, url_prefix='/api/reports')
    return flask_app


app = create_app()


if __name__ == '__main__':
    config = get_config()
    print("=" * 60)
    print(f"  {APP_NAME} v{VERSION}")
    print(f"  Starting server at http://{config.host}:{config.port}")
    print("=" * 60)
    app.run(host=config.host, port=config.port, debug=config.debug)
