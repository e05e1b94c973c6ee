import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask
from dotenv import load_dotenv

load_dotenv()

from config import Config  # noqa: E402  (load_dotenv needs to run first)
from extensions import db, login_manager  # noqa: E402  (load_dotenv needs to run first)


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level,
                            format='%(asctime)s %(levelname)s %(name)s - %(message)s')

    log_file = app.config.get("LOG_FILE")
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s'))
        logging.getLogger().addHandler(handler)

    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)


def create_app(overrides: dict | None = None) -> Flask:
    """Application factory for the blog backend."""

    app = Flask(__name__, static_folder=None)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    # session codec and storage guard get their settings here, nowhere else
    from session_codec import SessionCodec
    from storage import StorageGuard
    from utils import parse_duration

    app.extensions["session_codec"] = SessionCodec(
        app.config["JWT_SECRET_KEY"], parse_duration(app.config["SESSION_EXPIRE"])
    )
    app.extensions["storage_guard"] = StorageGuard(app.config["UPLOAD_FOLDER"])

    # init extensions
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.session_protection = None  # stateless: the cookie is verified on every request

    import permissions  # noqa: F401  (registers the Flask-Login loaders)
    from dispatch import register_error_handlers

    register_error_handlers(app)

    # blueprints
    from modules.accounts import bp as accounts_bp
    from modules.posts import bp as posts_bp
    from modules.storage import bp as storage_bp

    app.register_blueprint(accounts_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(storage_bp)

    # DB
    with app.app_context():
        # models have to be imported before create_all()
        import models  # noqa: F401

        db.create_all()

    app.logger.info("application created, uploads in %s", app.extensions["storage_guard"].root)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(port=app.config["PORT"])
