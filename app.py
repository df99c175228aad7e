from flask import Flask, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
import logging
from logging.handlers import RotatingFileHandler
import os

# ======================
# Extensions
# ======================
from extensions import db, login_manager, migrate

# ======================
# Models
# ======================
from models import User

from services.errors import ServiceError

# ======================
# Blueprints
# ======================
from auth import auth_bp
from students import students_bp
from commissions import commissions_bp
from courses import courses_bp
from users import users_bp
from notifications import notifications_bp
from audit import audit_bp
from reports import reports_bp
from settings import settings_bp

import config


CONFIGS = {
    "dev": config.DevConfig,
    "prod": config.ProdConfig,
    "test": config.TestConfig,
}

logger = logging.getLogger(__name__)


# ======================
# logging
# ======================
def _setup_logging(app):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if not app.config.get("LOG_TO_FILE", True):
        return

    log_dir = app.config.get("LOG_DIR", "logs")
    if not os.path.exists(log_dir):
        os.mkdir(log_dir)

    log_path = os.path.abspath(os.path.join(log_dir, "app.log"))
    root = logging.getLogger()
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and getattr(h, "baseFilename", None) == log_path:
            return

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,   # 1MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s"
    ))

    root.setLevel(logging.INFO)
    root.addHandler(file_handler)


# ======================
# App Init
# ======================
def create_app(config_object=None):
    if config_object is None:
        config_object = CONFIGS.get(os.getenv("APP_CONFIG", "dev"), config.DevConfig)

    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.ensure_ascii = False

    _setup_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # ======================
    # Register Blueprints
    # ======================
    app.register_blueprint(auth_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(commissions_bp)
    app.register_blueprint(courses_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)

    _register_error_handlers(app)
    _register_routes(app)

    with app.app_context():
        db.create_all()

    logger.info(f"App created | config={config_object.__name__}")
    return app


# ======================
# Error Handlers
# ======================
def _register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def _handle_service_error(err):
        db.session.rollback()
        logger.info(f"Service error | path={request.path} | code={err.code}")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(401)
    def _handle_401(err):
        return jsonify({"error": "unauthorized", "message": "يجب تسجيل الدخول أولاً"}), 401

    @app.errorhandler(403)
    def _handle_403(err):
        return jsonify({"error": "forbidden", "message": "لا يوجد لديك صلاحية"}), 403

    @app.errorhandler(404)
    def _handle_404(err):
        return jsonify({"error": "not_found", "message": "الصفحة غير موجودة"}), 404

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(err):
        db.session.rollback()
        logger.exception(f"Database error | path={request.path}")
        return jsonify({"error": "database_error", "message": "حدث خطأ في قاعدة البيانات"}), 500


# ======================
# Login Manager
# ======================
@login_manager.user_loader
def load_user(user_id):
    try:
        uid = int(user_id)
    except (TypeError, ValueError):
        logger.warning(f"user_loader invalid user_id: {user_id}")
        return None

    try:
        user = db.session.get(User, uid)
        if user is None:
            logger.warning(f"user_loader: user not found (id={uid})")
    except SQLAlchemyError:
        logger.exception(f"user_loader DB error for user_id={uid}")
        return None

    return user


@login_manager.unauthorized_handler
def unauthorized():
    logger.warning(
        f"Unauthorized access | path={request.path} | user={current_user.get_id()}"
    )
    return jsonify({"error": "unauthorized", "message": "يجب تسجيل الدخول أولاً"}), 401


def _register_routes(app):

    @app.route("/")
    def index():
        return jsonify({"name": "نظام المندوب الذكي", "status": "ok"})

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})


if __name__ == "__main__":
    create_app().run()
