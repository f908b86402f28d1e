"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
from flask import Flask, jsonify

from leadflow.errors import LeadflowError


def create_app():
    """Create and configure the Flask application."""
    from leadflow.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    # Fail fast on a bad scoring setup rather than on the first interaction
    from leadflow.lifecycle.scoring import load_scoring_config, validate_scoring_model
    validate_scoring_model()
    load_scoring_config()

    @app.errorhandler(LeadflowError)
    def handle_leadflow_error(error):
        return jsonify(error.to_dict()), error.status_code

    # Register blueprints
    from leadflow.routes.dashboard import bp as dashboard_bp
    from leadflow.routes.leads import bp as leads_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(leads_bp)

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic — no init_db() call.
    import importlib
    importlib.import_module('leadflow.models.lead')
    importlib.import_module('leadflow.models.interaction')
    importlib.import_module('leadflow.models.task')

    return app
