"""
servfix - Flask Application Factory
Service reports with dynamic checklist templates for field technicians
"""
import logging
import os

from flask import Flask, jsonify


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config.update(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-change-in-prod'),
        DATABASE_PATH=os.environ.get('DATABASE_PATH', 'data/servfix.db'),
        TEMPLATE_CACHE_TTL=int(os.environ.get('TEMPLATE_CACHE_TTL', '300')),
        PDF_OUTPUT_DIR=os.environ.get('PDF_OUTPUT_DIR', 'data/reports'),
        COMPANY_NAME=os.environ.get('COMPANY_NAME', ''),
        COMPANY_ADDRESS=os.environ.get('COMPANY_ADDRESS', ''),
        COMPANY_PHONE=os.environ.get('COMPANY_PHONE', ''),
        COMPANY_EMAIL=os.environ.get('COMPANY_EMAIL', ''),
        COMPANY_ORGNR=os.environ.get('COMPANY_ORGNR', ''),
    )
    if test_config:
        app.config.update(test_config)

    if not app.debug and not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Template cache is owned by the app, never by the engine
    from servfix.services.template_store import TemplateCache
    app.extensions['template_cache'] = TemplateCache(ttl=app.config['TEMPLATE_CACHE_TTL'])

    # Initialize database
    from servfix.services.db import init_db
    with app.app_context():
        init_db(app)

    from servfix.services.pdf_generator import format_nok
    app.jinja_env.filters['nok'] = format_nok

    # Register blueprints
    from servfix.routes.templates import templates_bp
    from servfix.routes.reports import reports_bp

    app.register_blueprint(templates_bp)
    app.register_blueprint(reports_bp)

    # PDF blueprint (optional - requires weasyprint + system libs)
    try:
        from servfix.routes.pdf import pdf_bp
        app.register_blueprint(pdf_bp)
    except (ImportError, OSError):
        app.logger.warning("PDF generation not available")

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


# For direct execution
if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=5000)
