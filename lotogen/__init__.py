"""Lottery number generator: Flask application package."""

from __future__ import annotations

from flask import Flask

from dotenv import load_dotenv


def create_app(config_object: object | None = None, draws=None, statistics=None) -> Flask:  # type: ignore[no-untyped-def]
    """Application factory.

    Args:
        config_object: Config class/object; defaults to the one selected by APP_ENV.
        draws, statistics: Optional repositories overriding DB_BACKEND (tests).

    Returns:
        Configured Flask application.
    """
    load_dotenv()

    from lotogen.auth import init_auth
    from lotogen.config import get_config
    from lotogen.db import init_storage
    from lotogen.error_handlers import register_error_handlers
    from lotogen.logging_config import configure_logging
    from lotogen.routes.admin import admin_bp
    from lotogen.routes.draw import draw_bp
    from lotogen.routes.games import games_bp
    from lotogen.routes.health import health_bp
    from lotogen.routes.numbers import numbers_bp
    from lotogen.routes.stats import stats_bp
    from lotogen.services import init_services

    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    configure_logging(app)
    init_storage(app, draws=draws, statistics=statistics)
    init_services(app)
    init_auth(app)
    register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(games_bp)
    app.register_blueprint(draw_bp)
    app.register_blueprint(numbers_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin")

    return app
