"""
ExamGuard Core Service Application Factory
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Create and configure the Flask application"""
    from examguard.config import settings
    from examguard.utils.logging_config import setup_logging

    app = Flask(__name__)

    # Configuration
    app.config.from_mapping(settings.model_dump())
    app.config['SECRET_KEY'] = settings.JWT_SECRET
    app.config['SQLALCHEMY_DATABASE_URI'] = settings.DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    if test_config:
        app.config.update(test_config)

    if not app.config.get('TESTING'):
        setup_logging(
            service_name="examguard",
            level=app.config['LOG_LEVEL'],
            log_to_file=app.config['LOG_TO_FILE'],
            log_dir=app.config['LOG_DIR'],
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app, resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS') or "*"}})

    # Pluggable scoring strategies
    from examguard.scoring import WeightedRiskScorer, StoredCheckMatcher
    app.extensions['risk_scorer'] = WeightedRiskScorer.from_config(app.config)
    app.extensions['plagiarism_matcher'] = StoredCheckMatcher()

    # Register blueprints
    from examguard.routes.users import users_bp
    from examguard.routes.classes import classes_bp
    from examguard.routes.exams import exams_bp
    from examguard.routes.sessions import sessions_bp
    from examguard.routes.violations import violations_bp
    from examguard.routes.plagiarism import plagiarism_bp
    from examguard.routes.reports import reports_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(classes_bp)
    app.register_blueprint(exams_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(violations_bp)
    app.register_blueprint(plagiarism_bp)
    app.register_blueprint(reports_bp)

    register_error_handlers(app)

    # Import models for table creation
    from examguard import models  # noqa: F401

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy', 'service': 'examguard-core'}

    # Create tables
    with app.app_context():
        db.create_all()

    return app


def register_error_handlers(app):
    """Render the error taxonomy as JSON"""
    from examguard.errors import ExamGuardError

    @app.errorhandler(ExamGuardError)
    def handle_examguard_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        code = (error.name or "http_error").upper().replace(" ", "_")
        return jsonify({"error": error.description, "code": code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception("Unhandled error: %s", error)
        return jsonify({
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "detail": str(error),
        }), 500
